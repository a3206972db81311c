from decimal import Decimal

import pytest

from paycore.errors import ValidationError
from paycore.payments.models import CardToken, PaymentRequest


@pytest.mark.parametrize("amount", ["", "abc", "0", "-5", "0.004", "NaN", None])
def test_invalid_amount_rejected(amount):
    with pytest.raises(ValidationError) as e:
        PaymentRequest.from_payload({"amount": amount, "currency": "CAD"})
    assert e.value.code == "invalid_amount"

@pytest.mark.parametrize("currency", ["", "CA", "CADD", "12$"])
def test_invalid_currency_rejected(currency):
    with pytest.raises(ValidationError) as e:
        PaymentRequest.from_payload({"amount": "10", "currency": currency})
    assert e.value.code == "invalid_currency"

def test_amount_converted_to_minor_units_half_up():
    assert PaymentRequest.from_payload({"amount": "10.005", "currency": "cad"}).amount_minor == 1001
    assert PaymentRequest.from_payload({"amount": 25, "currency": "USD"}).amount_minor == 2500
    assert PaymentRequest.from_payload({"amount": "0.005", "currency": "USD"}).amount_minor == 1

def test_from_payload_reads_billing_card_and_flags():
    request = PaymentRequest.from_payload({
        "amount": "49.99",
        "currency": "cad",
        "order_id": "1234",
        "billing_first_name": " Jane ",
        "billing_address_1": "1 Main St",
        "billing_country": "ca",
        "billing_postcode": "M5V 2T6",
        "card_number": "4111111111111111",
        "card_exp_month": "12",
        "card_exp_year": "2030",
        "card_cvv": "123",
        "save_card": "on",
    })
    assert request.amount == Decimal("49.99")
    assert request.currency == "CAD"
    assert request.order_ref == "1234"
    assert request.billing.first_name == "Jane"
    assert request.billing.street == "1 Main St"
    assert request.billing.country == "CA"
    assert request.card.number.get_secret_value() == "4111111111111111"
    assert "4111111111111111" not in repr(request)
    assert request.save_card is True
    assert request.token is None

def test_no_card_fields_means_no_card():
    request = PaymentRequest.from_payload({"amount": "1", "currency": "USD", "token": "SUT_x"})
    assert request.card is None
    assert request.token == "SUT_x"
    assert request.save_card is False

def test_card_token_masked():
    assert CardToken(value="SUT_abcdefgh1234").masked() == "****1234"
