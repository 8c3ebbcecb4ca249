# airlines.py

from typing import Dict

# =====================================================================
# SECTION START: AIRLINE NAMES
# IATA code -> human-readable airline name
# Static curated stage of the airline resolver, also used when the fare
# response does not supply an operating airline name.
# =====================================================================

AIRLINE_NAMES: Dict[str, str] = {
    # LATAM group
    "LA": "LATAM Airlines",
    "JJ": "LATAM Brasil",
    "LP": "LATAM Peru",
    "XL": "LATAM Ecuador",
    "4M": "LATAM Argentina",

    # Latin America
    "AR": "Aerolineas Argentinas",
    "AV": "Avianca",
    "2K": "Avianca Ecuador",
    "CM": "Copa Airlines",
    "AM": "Aeromexico",
    "JA": "JetSMART",
    "H2": "Sky Airline",
    "G3": "Gol Linhas Aereas",
    "AD": "Azul Brazilian Airlines",
    "VH": "Viva Air",
    "P5": "Wingo",
    "Y4": "Volaris",
    "VB": "VivaAerobus",
    "4O": "Interjet",

    # North America
    "AA": "American Airlines",
    "DL": "Delta Air Lines",
    "UA": "United Airlines",
    "AC": "Air Canada",
    "B6": "JetBlue Airways",
    "NK": "Spirit Airlines",
    "WN": "Southwest Airlines",
    "F9": "Frontier Airlines",

    # Europe
    "IB": "Iberia",
    "I2": "Iberia Express",
    "UX": "Air Europa",
    "PU": "Plus Ultra",
    "AF": "Air France",
    "KL": "KLM Royal Dutch Airlines",
    "LH": "Lufthansa",
    "BA": "British Airways",
    "LX": "Swiss International Air Lines",
    "OS": "Austrian Airlines",
    "TP": "TAP Air Portugal",
    "AZ": "ITA Airways",
    "VY": "Vueling",
    "FR": "Ryanair",
    "TK": "Turkish Airlines",
    "SU": "Aeroflot",

    # Middle East
    "EK": "Emirates",
    "QR": "Qatar Airways",
    "EY": "Etihad Airways",

    # Asia
    "CA": "Air China",
    "SQ": "Singapore Airlines",
    "CX": "Cathay Pacific",
    "JL": "Japan Airlines",
    "NH": "All Nippon Airways",
    "KE": "Korean Air",
    "TG": "Thai Airways",
}

# =====================================================================
# SECTION END: AIRLINE NAMES
# =====================================================================


# =====================================================================
# SECTION START: AIRLINE ALIASES
# Lowercase name or colloquial alias -> IATA code.
# Matched by exact key first, then by containment in either direction.
# =====================================================================

AIRLINE_ALIASES: Dict[str, str] = {
    "latam": "LA",
    "latam airlines": "LA",
    "latam brasil": "JJ",
    "latam peru": "LP",
    "aerolineas": "AR",
    "aerolineas argentinas": "AR",
    "aerolíneas argentinas": "AR",
    "avianca": "AV",
    "copa": "CM",
    "copa airlines": "CM",
    "aeromexico": "AM",
    "aeroméxico": "AM",
    "jetsmart": "JA",
    "sky airline": "H2",
    "gol": "G3",
    "azul": "AD",
    "viva air": "VH",
    "wingo": "P5",
    "volaris": "Y4",
    "vivaaerobus": "VB",
    "american": "AA",
    "american airlines": "AA",
    "delta": "DL",
    "united": "UA",
    "air canada": "AC",
    "jetblue": "B6",
    "spirit": "NK",
    "southwest": "WN",
    "frontier": "F9",
    "iberia": "IB",
    "iberia express": "I2",
    "air europa": "UX",
    "plus ultra": "PU",
    "air france": "AF",
    "klm": "KL",
    "lufthansa": "LH",
    "british airways": "BA",
    "swiss": "LX",
    "austrian": "OS",
    "tap portugal": "TP",
    "ita airways": "AZ",
    "alitalia": "AZ",
    "vueling": "VY",
    "ryanair": "FR",
    "turkish": "TK",
    "turkish airlines": "TK",
    "aeroflot": "SU",
    "emirates": "EK",
    "qatar": "QR",
    "qatar airways": "QR",
    "etihad": "EY",
    "air china": "CA",
    "singapore": "SQ",
    "cathay": "CX",
    "japan airlines": "JL",
    "korean": "KE",
    "thai airways": "TG",
}

# Longest aliases first so "iberia express" wins over "iberia"
_ALIASES_BY_LENGTH = sorted(AIRLINE_ALIASES.items(), key=lambda kv: len(kv[0]), reverse=True)

# =====================================================================
# SECTION END: AIRLINE ALIASES
# =====================================================================


# =====================================================================
# SECTION START: LOOKUP HELPERS
# =====================================================================

def get_airline_name_from_code(code: str) -> str:
    """Display name for an IATA code, or the code itself when unknown."""
    return AIRLINE_NAMES.get((code or "").upper(), code)


def is_known_code(code: str) -> bool:
    return (code or "").upper() in AIRLINE_NAMES


def get_airline_code_from_name(name: str) -> str:
    """
    Reverse lookup by name or alias.
    Returns the original input uppercased when nothing matches, so callers
    compare the result with name.upper() to detect a miss.
    """
    normalized = (name or "").strip().lower()
    if not normalized:
        return (name or "").upper()

    exact = AIRLINE_ALIASES.get(normalized)
    if exact:
        return exact

    for code, display in AIRLINE_NAMES.items():
        if display.lower() == normalized:
            return code

    for alias, code in _ALIASES_BY_LENGTH:
        if alias in normalized or normalized in alias:
            return code

    return name.upper()

# =====================================================================
# SECTION END: LOOKUP HELPERS
# =====================================================================
