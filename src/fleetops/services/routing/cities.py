"""City name normalization for Maltese delivery addresses."""

from __future__ import annotations

import re

CITY_ALIASES: dict[str, str] = {
    "attard": "Attard",
    "bahar iccaghaq": "Bahar ic-Caghaq",
    "bahar ic-caghaq": "Bahar ic-Caghaq",
    "balzan": "Balzan",
    "b'kara": "Birkirkara",
    "bkara": "Birkirkara",
    "swatar birkirkara": "Birkirkara",
    "birkirkara": "Birkirkara",
    "birzebbuga": "Birzebbuga",
    "birzebbugia": "Birzebbuga",
    "birzebbuiga": "Birzebbuga",
    "birżebbuġa": "Birzebbuga",
    "fgura": "Fgura",
    "zabbar rd fgura": "Fgura",
    "gharghur": "Gharghur",
    "għargħur": "Gharghur",
    "ghaxaq": "Ghaxaq",
    "għaxaq": "Ghaxaq",
    "gzira": "Gzira",
    "gżira": "Gzira",
    "hamrun": "Hamrun",
    "ħamrun": "Hamrun",
    "iklin": "Iklin",
    "kalkara": "Kalkara",
    "lija": "Lija",
    "hal lija": "Lija",
    "luqa": "Luqa",
    "hal farrug luqa": "Luqa",
    "luqa malta": "Luqa",
    "manikata": "Manikata",
    "marsa": "Marsa",
    "marsa scala": "Marsaskala",
    "marsa skala": "Marsaskala",
    "marsascala": "Marsaskala",
    "marsascala (msk)": "Marsaskala",
    "marsaskala": "Marsaskala",
    "marsaxlokk": "Marsaxlokk",
    "mellieha": "Mellieha",
    "melliha": "Mellieha",
    "mellieħa": "Mellieha",
    "mgarr": "Mgarr",
    "limgarr zebbiegh": "Mgarr",
    "zebbiegh": "Mgarr",
    "mġarr": "Mgarr",
    "mosta": "Mosta",
    "mqabba": "Mqabba",
    "mriehel": "Mriehel",
    "msida": "Msida",
    "il msida": "Msida",
    "il-msida": "Msida",
    "mtarfa": "Mtarfa",
    "munxar": "Munxar",
    "nadur": "Nadur",
    "naxxar": "Naxxar",
    "birguma naxxar": "Naxxar",
    "paceville": "Paceville",
    "paola": "Paola",
    "pembroke": "Pembroke",
    "pieta": "Pieta",
    "pietà": "Pieta",
    "qawra": "Qawra",
    "qormi": "Qormi",
    "hal qormi": "Qormi",
    "qrendi": "Qrendi",
    "rabat": "Rabat",
    "rabat (gozo)": "Victoria",
    "rabat gozo": "Victoria",
    "victoria gozo": "Victoria",
    "victoria": "Victoria",
    "st paul's bay": "Saint Paul's Bay",
    "st. paul's bay": "Saint Paul's Bay",
    "st pauls bay": "Saint Paul's Bay",
    "st. pauls bay": "Saint Paul's Bay",
    "san paul bahar": "Saint Paul's Bay",
    "san pawl il bahar": "Saint Paul's Bay",
    "san pawl il-bahar": "Saint Paul's Bay",
    "saint paul's bay": "Saint Paul's Bay",
    "san gwann": "San Gwann",
    "san gwan": "San Gwann",
    "san ġwann": "San Gwann",
    "santa lucia": "Santa Lucija",
    "santa lucija": "Santa Lucija",
    "santa luċija": "Santa Lucija",
    "st. venera": "Santa Venera",
    "st venera": "Santa Venera",
    "santa venera": "Santa Venera",
    "siggiewi": "Siggiewi",
    "siġġiewi": "Siggiewi",
    "sliema": "Sliema",
    "silema": "Sliema",
    "slima": "Sliema",
    "st julians": "St. Julian's",
    "st. julians": "St. Julian's",
    "saint julians": "St. Julian's",
    "san giljan": "St. Julian's",
    "st. julian": "St. Julian's",
    "st. julian's": "St. Julian's",
    "swieqi": "Swieqi",
    "swieqi (malta)": "Swieqi",
    "madliena swieqi": "Swieqi",
    "ta xbiex": "Ta' Xbiex",
    "ta' xbiex": "Ta' Xbiex",
    "tarxien": "Tarxien",
    "valleta": "Valletta",
    "belt valletta": "Valletta",
    "valletta": "Valletta",
    "xghajra": "Xghajra",
    "xgħajra": "Xghajra",
    "zabbar": "Zabbar",
    "żabbar": "Zabbar",
    "zebbug gozo": "Zebbug (Gozo)",
    "zebbug": "Zebbug",
    "zebbug malta": "Zebbug",
    "żebbuġ": "Zebbug",
    "zejtun": "Zejtun",
    "żejtun": "Zejtun",
    "zurrieq": "Zurrieq",
    "żurrieq": "Zurrieq",
    "kirkop": "Kirkop",
    "hal far": "Hal Far",
}

# Maltese definite articles and "Ħal" written in front of place names.
_ARTICLE_PREFIX = re.compile(r"^(?:il|l|is|ir|iz|ix|haz|ħaż|hal|ħal|lim)[-\s]+", re.IGNORECASE)
_MALTESE_FOLD = str.maketrans("ħżġċĦŻĠĊàèìòù", "hzgcHZGCaeiou")
_WHITESPACE = re.compile(r"\s+")


def _candidates(name: str) -> list[str]:
    key = _WHITESPACE.sub(" ", name.strip().lower())
    stripped = _ARTICLE_PREFIX.sub("", key, count=1)
    keys = [key, stripped]
    keys.extend(k.translate(_MALTESE_FOLD) for k in (key, stripped))
    seen: list[str] = []
    for candidate in keys:
        if candidate and candidate not in seen:
            seen.append(candidate)
    return seen


def standardize_city_name(city: str | None) -> str:
    """Map a free-text city to its canonical name.

    Tries the whole name, the name without a leading article, and the
    diacritic-folded forms; then leading multi-word runs of every form, and
    only after those the single words. Unknown names come back capitalized
    so identical spellings still cluster.
    """
    if not city or not city.strip():
        return ""

    candidates = _candidates(city)
    for candidate in candidates:
        if candidate in CITY_ALIASES:
            return CITY_ALIASES[candidate]

    for candidate in candidates:
        words = candidate.split(" ")
        for end in range(len(words) - 1, 1, -1):
            prefix = " ".join(words[:end])
            if prefix in CITY_ALIASES:
                return CITY_ALIASES[prefix]

    # Single words only once no multi-word alias matched any candidate.
    for candidate in candidates:
        for word in candidate.split(" "):
            if word in CITY_ALIASES:
                return CITY_ALIASES[word]

    cleaned = _WHITESPACE.sub(" ", city.strip())
    return cleaned[:1].upper() + cleaned[1:].lower()
