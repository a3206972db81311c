# module paycore.payments.billing
from typing import Any, Dict

from paycore.payments.models import BillingDetails

CA_PROVINCES = {
    "alberta": "AB", "british columbia": "BC", "manitoba": "MB", "new brunswick": "NB",
    "newfoundland": "NL", "newfoundland and labrador": "NL", "northwest territories": "NT",
    "nova scotia": "NS", "nunavut": "NU", "ontario": "ON", "prince edward island": "PE",
    "quebec": "QC", "québec": "QC", "saskatchewan": "SK", "yukon": "YT", "yukon territory": "YT",
}

US_STATES = {
    "alabama": "AL", "alaska": "AK", "arizona": "AZ", "arkansas": "AR", "california": "CA",
    "colorado": "CO", "connecticut": "CT", "delaware": "DE", "florida": "FL", "georgia": "GA",
    "hawaii": "HI", "idaho": "ID", "illinois": "IL", "indiana": "IN", "iowa": "IA", "kansas": "KS",
    "kentucky": "KY", "louisiana": "LA", "maine": "ME", "maryland": "MD", "massachusetts": "MA",
    "michigan": "MI", "minnesota": "MN", "mississippi": "MS", "missouri": "MO", "montana": "MT",
    "nebraska": "NE", "nevada": "NV", "new hampshire": "NH", "new jersey": "NJ", "new mexico": "NM",
    "new york": "NY", "north carolina": "NC", "north dakota": "ND", "ohio": "OH", "oklahoma": "OK",
    "oregon": "OR", "pennsylvania": "PA", "rhode island": "RI", "south carolina": "SC",
    "south dakota": "SD", "tennessee": "TN", "texas": "TX", "utah": "UT", "vermont": "VT",
    "virginia": "VA", "washington": "WA", "west virginia": "WV", "wisconsin": "WI", "wyoming": "WY",
    "district of columbia": "DC", "washington dc": "DC", "d.c.": "DC",
    "puerto rico": "PR", "guam": "GU", "u.s. virgin islands": "VI", "us virgin islands": "VI",
    "american samoa": "AS", "northern mariana islands": "MP",
}

_CODES = {
    "CA": set(CA_PROVINCES.values()),
    "US": set(US_STATES.values()),
}
_NAMES = {"CA": CA_PROVINCES, "US": US_STATES}


def format_state_code(state: str, country: str) -> str:
    """
    Code province/état sur 2 lettres pour CA et US (nom complet accepté).
    Valeur inconnue: 2 premières lettres en majuscules. Autres pays: inchangé.
    """
    state = (state or "").strip()
    if not state:
        return ""
    country = (country or "").upper()
    if country in _CODES:
        if len(state) == 2 and state.upper() in _CODES[country]:
            return state.upper()
        return _NAMES[country].get(state.lower(), state[:2].upper())
    return state.upper() if len(state) == 2 else state


def billing_payload(billing: BillingDetails) -> Dict[str, Any]:
    return {
        "street": billing.street,
        "city": billing.city,
        "state": format_state_code(billing.state, billing.country),
        "country": billing.country,
        "zip": billing.zip.replace(" ", ""),
    }
