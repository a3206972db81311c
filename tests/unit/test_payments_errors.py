from paycore.payments.errors import (
    AVS_FALLBACK_MESSAGE,
    GENERIC_MESSAGE,
    bucket_for,
    normalize,
    sanitize_markup,
)


def test_custom_message_for_known_code_wins():
    messages = {"avs": "Please check your <b>billing address</b>.<script>alert(1)</script>"}
    result = normalize("3007", "The zip/postal code provided failed the AVS check.", messages)
    assert result.category == "AVS_FAILED"
    assert result.message == "Please check your <b>billing address</b>.alert(1)"

def test_avs_marker_without_custom_message():
    result = normalize("", "The zip/postal code provided failed the AVS check.")
    assert result == ("AVS_FAILED", AVS_FALLBACK_MESSAGE)

def test_avs_marker_uses_custom_avs_message():
    result = normalize("9999", "Failed the AVS check", {"avs": "Address mismatch"})
    assert result == ("AVS_FAILED", "Address mismatch")

def test_internal_processor_phrasing_is_hidden():
    result = normalize("3009", "Your request has been declined by the issuing bank.")
    assert result == ("DECLINED", GENERIC_MESSAGE)
    result = normalize("", "Funds were reserved on the card and will be released shortly.")
    assert result.message == GENERIC_MESSAGE

def test_raw_message_is_sanitized():
    result = normalize("", "Card <i>declined</i> <a href='https://x.example'>here</a>")
    assert result == ("GENERIC", "Card <i>declined</i> here")

def test_empty_message_is_generic():
    assert normalize(None, None) == ("GENERIC", GENERIC_MESSAGE)

def test_risk_codes_map_to_their_messages():
    result = normalize("4845", "Suspicious activity", {"risk_suspicious": "We could not process this card."})
    assert result == ("RISK_DECLINE", "We could not process this card.")

def test_bucket_for_is_case_and_space_insensitive():
    assert bucket_for(" cvv_failed ") == ("cvv", "CVV_FAILED")
    assert bucket_for("3022") == ("insufficient_funds", "INSUFFICIENT_FUNDS")
    assert bucket_for("nope") == (None, "GENERIC")

def test_sanitize_strips_attributes_and_escapes_text():
    assert sanitize_markup('<strong class="x">Hi</strong> & <br/>bye') == "<strong>Hi</strong> &amp; <br>bye"
