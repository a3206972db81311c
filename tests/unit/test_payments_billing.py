import pytest

from paycore.payments.billing import billing_payload, format_state_code
from paycore.payments.models import BillingDetails


@pytest.mark.parametrize(
    "state, country, expected",
    [
        ("Ontario", "CA", "ON"),
        ("qc", "CA", "QC"),
        ("Québec", "ca", "QC"),
        ("New York", "US", "NY"),
        ("District of Columbia", "US", "DC"),
        ("Unknownia", "US", "UN"),
        ("by", "DE", "BY"),
        ("Bavaria", "DE", "Bavaria"),
        ("", "US", ""),
    ],
)
def test_format_state_code(state, country, expected):
    assert format_state_code(state, country) == expected

def test_billing_payload():
    billing = BillingDetails(street="1 Main St", city="Toronto", state="Ontario", country="CA", zip="M5V 2T6")
    assert billing_payload(billing) == {
        "street": "1 Main St",
        "city": "Toronto",
        "state": "ON",
        "country": "CA",
        "zip": "M5V2T6",
    }
