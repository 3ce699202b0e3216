"""
Nationality resolution for free-text OCR fields.

Maps what the card prints ("FRANÇAISE", an OCR slip like "FRANCAISF",
"GERMAN", "BEL") to the ICAO 9303 code the MRZ would carry.

Strategy:
  1. Exact lookup of the accent-folded word in the demonym table
  2. Exact lookup as an already-coded value ("FRA", "D")
  3. Fuzzy-match against all demonyms (SequenceMatcher) above a threshold
"""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass
from difflib import SequenceMatcher

# ─── Reference Data ──────────────────────────────────────────────────
# ICAO code → printed nationality words (French first, then English).
# Germany is "D" in the MRZ; other codes are ISO 3166-1 alpha-3.

NATIONALITY_WORDS: dict[str, tuple[str, ...]] = {
    "FRA": ("FRANCAISE", "FRANCAIS", "FRENCH", "FRANCE"),
    "D": ("ALLEMANDE", "ALLEMAND", "GERMAN", "ALLEMAGNE", "GERMANY"),
    "BEL": ("BELGE", "BELGIAN", "BELGIQUE", "BELGIUM"),
    "CHE": ("SUISSE", "SWISS", "SWITZERLAND"),
    "ITA": ("ITALIENNE", "ITALIEN", "ITALIAN", "ITALIE", "ITALY"),
    "ESP": ("ESPAGNOLE", "ESPAGNOL", "SPANISH", "ESPAGNE", "SPAIN"),
    "PRT": ("PORTUGAISE", "PORTUGAIS", "PORTUGUESE", "PORTUGAL"),
    "LUX": ("LUXEMBOURGEOISE", "LUXEMBOURGEOIS", "LUXEMBOURGISH", "LUXEMBOURG"),
    "NLD": ("NEERLANDAISE", "NEERLANDAIS", "DUTCH", "PAYS-BAS", "NETHERLANDS"),
    "GBR": ("BRITANNIQUE", "BRITISH", "ROYAUME-UNI", "UNITED KINGDOM"),
    "IRL": ("IRLANDAISE", "IRLANDAIS", "IRISH", "IRLANDE", "IRELAND"),
    "POL": ("POLONAISE", "POLONAIS", "POLISH", "POLOGNE", "POLAND"),
    "ROU": ("ROUMAINE", "ROUMAIN", "ROMANIAN", "ROUMANIE", "ROMANIA"),
    "USA": ("AMERICAINE", "AMERICAIN", "AMERICAN", "ETATS-UNIS", "UNITED STATES"),
    "CAN": ("CANADIENNE", "CANADIEN", "CANADIAN", "CANADA"),
    "MAR": ("MAROCAINE", "MAROCAIN", "MOROCCAN", "MAROC", "MOROCCO"),
    "DZA": ("ALGERIENNE", "ALGERIEN", "ALGERIAN", "ALGERIE", "ALGERIA"),
    "TUN": ("TUNISIENNE", "TUNISIEN", "TUNISIAN", "TUNISIE", "TUNISIA"),
    "SEN": ("SENEGALAISE", "SENEGALAIS", "SENEGALESE", "SENEGAL"),
    "CIV": ("IVOIRIENNE", "IVOIRIEN", "IVORIAN", "COTE D'IVOIRE"),
    "TUR": ("TURQUE", "TURKISH", "TURQUIE", "TURKEY"),
    "CHN": ("CHINOISE", "CHINOIS", "CHINESE", "CHINE", "CHINA"),
    "BRA": ("BRESILIENNE", "BRESILIEN", "BRAZILIAN", "BRESIL", "BRAZIL"),
}

# Codes accepted as-is when the card prints the code instead of a word.
KNOWN_CODES: frozenset[str] = frozenset(NATIONALITY_WORDS)

# Minimum fuzzy-match score to accept (0.0 = no match, 1.0 = exact)
MATCH_THRESHOLD = 0.80

_WORD_TO_CODE: dict[str, str] = {
    word: code for code, words in NATIONALITY_WORDS.items() for word in words
}


# ─── Data Structures ────────────────────────────────────────────────


@dataclass
class NationalityMatch:
    """Result of a nationality resolution attempt."""

    original: str  # What the OCR said
    code: str  # ICAO code we resolved it to
    confidence: float  # 0.0-1.0 match score


# ─── Public API ──────────────────────────────────────────────────────


def fold_accents(value: str) -> str:
    """'FRANÇAISE' → 'FRANCAISE'. Uppercases as well."""
    decomposed = unicodedata.normalize("NFKD", value.upper())
    return "".join(char for char in decomposed if not unicodedata.combining(char))


def resolve_nationality(raw_value: str) -> NationalityMatch | None:
    """Resolve a printed nationality to its ICAO code, or None if unsure."""
    cleaned = " ".join(fold_accents(raw_value).split())
    if not cleaned:
        return None

    if cleaned in _WORD_TO_CODE:
        return NationalityMatch(original=raw_value, code=_WORD_TO_CODE[cleaned], confidence=1.0)
    if cleaned in KNOWN_CODES:
        return NationalityMatch(original=raw_value, code=cleaned, confidence=1.0)

    best_word, best_score = "", 0.0
    for word in _WORD_TO_CODE:
        score = SequenceMatcher(None, cleaned, word).ratio()
        if score > best_score:
            best_word, best_score = word, score

    if best_score >= MATCH_THRESHOLD:
        return NationalityMatch(
            original=raw_value, code=_WORD_TO_CODE[best_word], confidence=round(best_score, 4)
        )
    return None
