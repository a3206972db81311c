"""
Normalisation des erreurs processeur en (catégorie, message sûr).

Ordre de résolution:
  1) code processeur avec message personnalisé configuré
  2) message brut contenant "failed the avs check" -> AVS_FAILED
  3) message brut transmis (sauf formulations internes du processeur)
Le message final est nettoyé: seules <strong> <b> <em> <i> <br> survivent, sans attributs.
"""
import html
from html.parser import HTMLParser
from typing import Mapping, NamedTuple, Optional, Tuple

AVS_MARKER = "failed the avs check"
AVS_FALLBACK_MESSAGE = "Address Verification Failed"
GENERIC_MESSAGE = "Payment processing error. Please try again or contact support."
INTERNAL_PHRASES = ("failed the", "request has", "reserved on", "will be released")

ALLOWED_TAGS = {"strong", "b", "em", "i", "br"}

# code processeur -> (clé de message personnalisé, catégorie)
CODE_BUCKETS = {}
for _codes, _key, _category in (
    (("3007", "AVS_FAILED", "AVS_NO_MATCH", "AVS_NOT_PROCESSED", "ADDRESS_VERIFICATION_FAILED"), "avs", "AVS_FAILED"),
    (("3023", "5015", "CVV_FAILED", "CVV_NO_MATCH", "INVALID_CVV"), "cvv", "CVV_FAILED"),
    (("3022", "3051", "3052", "INSUFFICIENT_FUNDS", "NSF"), "insufficient_funds", "INSUFFICIENT_FUNDS"),
    (("4002", "RISK_DECLINE"), "risk_decline", "RISK_DECLINE"),
    (("3001", "3002", "3004", "3005", "3009", "5001", "DECLINED", "DO_NOT_HONOR"), "declined", "DECLINED"),
    (("3012", "EXPIRED_CARD", "CARD_EXPIRED"), "expired", "EXPIRED_CARD"),
    (("3011", "5002", "5003", "INVALID_CARD", "INVALID_CARD_NUMBER"), "invalid_card", "INVALID_CARD"),
):
    for _code in _codes:
        CODE_BUCKETS[_code] = (_key, _category)

for _code, _key in (
    ("4844", "risk_max_attempts"),
    ("4845", "risk_suspicious"),
    ("4846", "risk_geographic"),
    ("4847", "risk_velocity"),
    ("4848", "risk_device"),
    ("4849", "risk_ip"),
    ("4850", "risk_email"),
    ("4851", "risk_phone"),
):
    CODE_BUCKETS[_code] = (_key, "RISK_DECLINE")


class NormalizedError(NamedTuple):
    category: str
    message: str


class _SafeMarkup(HTMLParser):
    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.parts = []

    def handle_starttag(self, tag, attrs):
        if tag in ALLOWED_TAGS:
            self.parts.append(f"<{tag}>")

    def handle_startendtag(self, tag, attrs):
        if tag == "br":
            self.parts.append("<br>")

    def handle_endtag(self, tag):
        if tag in ALLOWED_TAGS and tag != "br":
            self.parts.append(f"</{tag}>")

    def handle_data(self, data):
        self.parts.append(html.escape(data, quote=False))


def sanitize_markup(text: str) -> str:
    parser = _SafeMarkup()
    parser.feed(text or "")
    parser.close()
    return "".join(parser.parts)


def bucket_for(code: Optional[str]) -> Tuple[Optional[str], str]:
    key, category = CODE_BUCKETS.get(str(code or "").strip().upper(), (None, "GENERIC"))
    return key, category


def normalize(raw_code: Optional[str], raw_message: Optional[str], messages: Optional[Mapping[str, str]] = None) -> NormalizedError:
    messages = messages or {}
    raw_message = raw_message or ""
    key, category = bucket_for(raw_code)

    if key and messages.get(key):
        return NormalizedError(category, sanitize_markup(messages[key]))

    if AVS_MARKER in raw_message.lower():
        return NormalizedError("AVS_FAILED", sanitize_markup(messages.get("avs") or AVS_FALLBACK_MESSAGE))

    lower = raw_message.lower()
    if not raw_message or any(p in lower for p in INTERNAL_PHRASES):
        return NormalizedError(category, GENERIC_MESSAGE)
    return NormalizedError(category, sanitize_markup(raw_message))
