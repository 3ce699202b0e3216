"""
Deterministic regex-based extraction from free OCR text.

This module reads the printed (non-MRZ) side of an identity document. It
serves as the fallback for anything the MRZ does not carry or could not be
trusted for, and it runs whether or not an MRZ was found.

Every field has an ORDERED table of labeled patterns: French labels first,
then English, then generic shapes. The first pattern that matches wins. If
its value does not survive normalization (e.g. a date like 32.13.1990) the
field stays None. It's better to extract nothing than to extract wrong data.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Optional

from .countries import resolve_nationality
from .dates import parse_free_text_date
from .models import DocumentType, IdentityRecord, Sex

MAX_NAME_TOKENS = 4

_LETTERS = "A-ZÀÂÄÉÈÊËÏÎÔÙÛÜÇŒ"
_NAME = rf"[{_LETTERS}' \-]"
_DATE = r"\d{2}[./-]\d{2}[./-]\d{4}"
_NUMBER_LABEL = r"N(?:°|O\.?|UMBER)?"

# Words that start another field. A captured name stops at the first one.
LABEL_WORDS: frozenset[str] = frozenset({
    "NOM", "PRÉNOM", "PRÉNOMS", "PRENOM", "PRENOMS", "SURNAME", "GIVEN",
    "FIRST", "NAMES", "SEXE", "SEX", "NATIONALITÉ", "NATIONALITE",
    "NATIONALITY", "NÉ", "NÉE", "DATE", "LIEU", "PLACE", "BIRTH", "TAILLE",
    "HEIGHT", "SIGNATURE", "VALABLE", "VALID", "EXPIRY", "CARTE", "CARD",
    "DOCUMENT", "ADRESSE", "ADDRESS",
})

# A value must not start with another label ("NOM\nPRÉNOM: JEAN").
_NOT_A_LABEL = r"(?!(?:PR[EÉ]NOMS?|SURNAME|GIVEN|SEXE?|NATIONALIT|DATE|LIEU|N[EÉ]E?\b))"

_HORIZONTAL_SPACE = re.compile(r"[^\S\n]+")
_NON_NAME_CHARS = re.compile(rf"[^{_LETTERS}' \-]")


# ─── Pattern Tables ──────────────────────────────────────────────────


@dataclass(frozen=True)
class FieldPattern:
    """One ranked extraction rule.

    ``value`` is emitted on match when set (keyword patterns such as
    MASCULIN); otherwise the first capture group is used.
    """

    field: str
    label: str
    locale: str  # "fr", "en" or "generic"
    pattern: re.Pattern[str]
    value: Optional[str] = None


def _rule(field: str, label: str, locale: str, pattern: str, value: str | None = None) -> FieldPattern:
    return FieldPattern(field, label, locale, re.compile(pattern, re.MULTILINE), value)


FIELD_PATTERNS: tuple[FieldPattern, ...] = (
    # ── Surname ──
    _rule("last_name", "NOM", "fr", rf"(?<![{_LETTERS}])NOM\b(?:\s*D['’]\s*USAGE)?\s*[:\-]?\s*{_NOT_A_LABEL}([{_LETTERS}]{_NAME}{{1,29}})"),
    _rule("last_name", "SURNAME", "en", rf"\bSURNAME\b\s*[:\-]?\s*{_NOT_A_LABEL}([{_LETTERS}]{_NAME}{{1,29}})"),
    # ── Given names ──
    _rule("first_name", "PRÉNOM(S)", "fr", rf"\bPR[EÉ]NOM(?:\(S\)|S)?\s*[:\-]?\s*{_NOT_A_LABEL}([{_LETTERS}][{_LETTERS}' \-,]{{1,49}})"),
    _rule("first_name", "GIVEN NAMES", "en", rf"\bGIVEN\s*NAMES?\s*[:\-]?\s*{_NOT_A_LABEL}([{_LETTERS}][{_LETTERS}' \-,]{{1,49}})"),
    _rule("first_name", "FIRST NAME", "en", rf"\bFIRST\s*NAMES?\s*[:\-]?\s*{_NOT_A_LABEL}([{_LETTERS}][{_LETTERS}' \-,]{{1,49}})"),
    # ── Birth date ──
    _rule("birth_date", "NÉ(E) LE", "fr", rf"\bN[EÉ]\(?E?\)?\s*LE\s*[:\-]?\s*({_DATE})"),
    _rule("birth_date", "DATE DE NAISSANCE", "fr", rf"DATE\s*(?:DE\s*)?NAISSANCE\s*[:\-]?\s*({_DATE})"),
    _rule("birth_date", "DATE OF BIRTH", "en", rf"DATE\s*OF\s*BIRTH\s*[:\-]?\s*({_DATE})"),
    _rule("birth_date", "BORN", "en", rf"\bBORN\s*[:\-]?\s*({_DATE})"),
    _rule("birth_date", "DATE", "generic", r"\b(\d{2}[./-]\d{2}[./-](?:19|20)\d{2})\b"),
    # ── Birth place ──
    _rule("birth_place", "À <VILLE> (<DÉPT>)", "fr", rf"\b[AÀ] +([{_LETTERS}]{_NAME}{{1,39}}?) *\(\d{{2,5}}\)"),
    _rule("birth_place", "LIEU DE NAISSANCE", "fr", rf"LIEU\s*(?:DE\s*)?NAISSANCE\s*[:\-]?\s*([{_LETTERS}]{_NAME}{{1,39}})"),
    _rule("birth_place", "PLACE OF BIRTH", "en", rf"PLACE\s*OF\s*BIRTH\s*[:\-]?\s*([{_LETTERS}]{_NAME}{{1,39}})"),
    _rule("birth_place", "BIRTH PLACE", "en", rf"BIRTH\s*PLACE\s*[:\-]?\s*([{_LETTERS}]{_NAME}{{1,39}})"),
    # ── Sex ──
    _rule("sex", "SEXE", "fr", r"\bSEXE\s*[:\-]?\s*([MF])\b"),
    _rule("sex", "MASCULIN", "fr", r"\bMASCULIN\b", value="M"),
    _rule("sex", "FÉMININ", "fr", r"\bF[EÉ]MININ\b", value="F"),
    _rule("sex", "SEX", "en", r"\bSEX\s*[:\-]?\s*([MFX])\b"),
    _rule("sex", "MALE", "en", r"\bMALE\b", value="M"),
    _rule("sex", "FEMALE", "en", r"\bFEMALE\b", value="F"),
    # ── Nationality ──
    _rule("nationality", "NATIONALITÉ", "fr", rf"\bNATIONALIT[EÉ]\s*[:\-]?\s*([{_LETTERS}\-]{{1,20}})"),
    # Skips the RÉPUBLIQUE FRANÇAISE header printed on every French document.
    _rule("nationality", "FRANÇAISE", "fr", r"(?<!PUBLIQUE )\bFRAN[CÇ]AISE?\b", value="FRA"),
    _rule("nationality", "NATIONALITY", "en", rf"\bNATIONALITY\s*[:\-]?\s*([{_LETTERS}\-]{{1,20}})"),
    _rule("nationality", "FRENCH", "en", r"\bFRENCH\b", value="FRA"),
    # ── Document number ──
    _rule("document_number", "N° DE CARTE", "fr", rf"\bN(?:°|O\.?)?\s*(?:DE\s*)?(?:CARTE|CNI|ID)\b\s*[:\-]?\s*([A-Z0-9]{{9,14}})\b"),
    _rule("document_number", "PASSEPORT N°", "fr", rf"\bPASSEPORT\s*{_NUMBER_LABEL}\s*[:\-]?\s*([A-Z0-9]{{9,14}})\b"),
    _rule("document_number", "CARD NO", "en", rf"\bCARD\s*{_NUMBER_LABEL}\s*[:\-]?\s*([A-Z0-9]{{9,14}})\b"),
    _rule("document_number", "PASSPORT NO", "en", rf"\bPASSPORT\s*{_NUMBER_LABEL}\s*[:\-]?\s*([A-Z0-9]{{9,14}})\b"),
    _rule("document_number", "DOCUMENT NO", "en", rf"\bDOCUMENT\s*{_NUMBER_LABEL}\s*[:\-]?\s*([A-Z0-9]{{9,14}})\b"),
    _rule("document_number", "CNI SHAPE", "generic", r"\b([A-Z]{2}\d{7}[A-Z0-9]{3})\b"),
    _rule("document_number", "12 DIGITS", "generic", r"\b(\d{12})\b"),
    # ── Expiry date ──
    _rule("expiry_date", "VALABLE JUSQU'AU", "fr", rf"VALABLE\s*JUSQU['’ ]?\s*AU\s*[:\-]?\s*({_DATE})"),
    _rule("expiry_date", "DATE D'EXPIRATION", "fr", rf"DATE\s*D['’]?\s*EXPIRATION\s*[:\-]?\s*({_DATE})"),
    _rule("expiry_date", "FIN DE VALIDITÉ", "fr", rf"DATE\s*(?:DE\s*)?FIN\s*(?:DE\s*)?VALIDIT[EÉ]\s*[:\-]?\s*({_DATE})"),
    _rule("expiry_date", "VALID UNTIL", "en", rf"VALID\s*UNTIL\s*[:\-]?\s*({_DATE})"),
    _rule("expiry_date", "DATE OF EXPIRY", "en", rf"DATE\s*OF\s*EXPIRY\s*[:\-]?\s*({_DATE})"),
    _rule("expiry_date", "EXPIRY", "en", rf"\bEXPIR(?:Y|ES|E)\s*[:\-]?\s*({_DATE})"),
)

# (document type, pattern) — first match wins, default ID.
DOCUMENT_TYPE_PATTERNS: tuple[tuple[DocumentType, re.Pattern[str]], ...] = (
    (DocumentType.PASSPORT, re.compile(r"PASSEPORT|PASSPORT|TRAVEL\s*DOCUMENT")),
    (DocumentType.RESIDENCE_PERMIT, re.compile(
        r"TITRE\s*DE\s*S[EÉ]JOUR|CARTE\s*DE\s*S[EÉ]JOUR|RESIDENCE\s*PERMIT|AUTORISATION\s*DE\s*S[EÉ]JOUR"
    )),
    (DocumentType.DRIVING_LICENSE, re.compile(
        r"PERMIS\s*DE\s*CONDUIRE|DRIVING\s*LICEN[CS]E|PERMIS\s*B\b|CAT[EÉ]GORIE\s*[ABCDE]\b"
    )),
    (DocumentType.ID, re.compile(
        r"CARTE\s*(?:NATIONALE\s*)?D['’]?\s*IDENTIT[EÉ]|IDENTITY\s*CARD|IDFRA|R[EÉ]PUBLIQUE\s*FRAN[CÇ]AISE"
    )),
    (DocumentType.PASSPORT, re.compile(r"^P<[A-Z<]{3}", re.MULTILINE)),
    (DocumentType.ID, re.compile(r"^(?:ID|I<)[A-Z<]{3}", re.MULTILINE)),
)


# ─── Public API ──────────────────────────────────────────────────────


def extract_with_regex(raw_text: str) -> IdentityRecord:
    """Extract identity fields from raw OCR text using the pattern tables.

    Args:
        raw_text: The raw OCR text of the document (any case, any noise).

    Returns:
        IdentityRecord with every field that could be deterministically read.
    """
    text = normalize_ocr_text(raw_text)
    found: dict[str, object] = {}

    for rule in FIELD_PATTERNS:
        if rule.field in found:
            continue
        match = rule.pattern.search(text)
        if match:
            raw_value = rule.value if rule.value is not None else match.group(1)
            found[rule.field] = _NORMALIZERS[rule.field](raw_value)

    return IdentityRecord(**{field: value for field, value in found.items() if value is not None})


def detect_document_type(raw_text: str) -> DocumentType:
    """Sniff the document type from keywords, then MRZ prefixes."""
    text = normalize_ocr_text(raw_text)
    for document_type, pattern in DOCUMENT_TYPE_PATTERNS:
        if pattern.search(text):
            return document_type
    return DocumentType.ID


def normalize_ocr_text(raw_text: str) -> str:
    """Uppercase and collapse horizontal whitespace, keeping line breaks."""
    lines = (_HORIZONTAL_SPACE.sub(" ", line).strip() for line in raw_text.upper().splitlines())
    return "\n".join(line for line in lines if line)


def clean_name(value: str) -> str | None:
    """Keep letters, hyphens and apostrophes; stop at the next label; max 4 words."""
    tokens: list[str] = []
    for token in _NON_NAME_CHARS.sub(" ", value.upper()).split():
        if token in LABEL_WORDS or len(tokens) == MAX_NAME_TOKENS:
            break
        tokens.append(token)
    return " ".join(tokens) or None


# ─── Normalizers ─────────────────────────────────────────────────────


def _nationality_code(value: str) -> str | None:
    match = resolve_nationality(value)
    return match.code if match else None


_NORMALIZERS: dict[str, Callable[[str], object]] = {
    "last_name": clean_name,
    "first_name": clean_name,
    "birth_place": clean_name,
    "birth_date": parse_free_text_date,
    "expiry_date": parse_free_text_date,
    "sex": Sex,
    "nationality": _nationality_code,
    "document_number": str.strip,
}
