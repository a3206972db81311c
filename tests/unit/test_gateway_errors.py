from paycore.gateway.errors import HTTP_DEFAULT_MESSAGES, SERVER_ERROR_MESSAGE, extract_error


def test_risk_response_detail_code_wins():
    body = {
        "error": {
            "code": "4002",
            "message": "Transaction declined by our risk management system.",
            "additionalDetails": [{"type": "RISK_RESPONSE", "code": "4845", "message": "Suspicious"}],
        }
    }
    assert extract_error(body) == ("4845", "Transaction declined by our risk management system.")

def test_avs_and_cvv_responses():
    assert extract_error({"avsResponse": "NOT_PROCESSED", "cvvVerification": "N"}) == ("CVV_FAILED", "Security Code Invalid")
    assert extract_error({"avsResponse": "n"}) == ("AVS_FAILED", "Address Verification Failed")

def test_error_code_and_field_errors():
    body = {
        "error": {
            "code": "5068",
            "message": "Field error(s)",
            "fieldErrors": [{"field": "card.cvv", "error": "must match \"\\d{3,4}\""}],
        }
    }
    code, message = extract_error(body, 400)
    assert code == "5068"
    assert message.startswith("Field error(s) - card.cvv: ")

def test_code_inferred_from_message_text():
    assert extract_error({"error": {"message": "Insufficient funds on the card"}}) == ("INSUFFICIENT_FUNDS", "Insufficient funds on the card")
    assert extract_error({"error": {"message": "Something odd"}})[0] == ""

def test_http_status_defaults():
    assert extract_error({}, 401) == ("", HTTP_DEFAULT_MESSAGES[401])
    assert extract_error({}, 402) == ("DECLINED", "Payment declined")
    assert extract_error({}, 503) == ("", SERVER_ERROR_MESSAGE)
    assert extract_error({}, 418) == ("", "API Error (HTTP 418)")
    assert extract_error(None) == ("", "Payment failed")
