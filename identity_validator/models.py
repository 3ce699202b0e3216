"""
Pydantic models for identity data — strict typing as our first line of defense.

Every result is built fresh per call. Identity fields are Optional and stay
None when absent; nothing is coerced to an empty string.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


# ─── Enumerations ───────────────────────────────────────────────────


class MRZFormat(str, Enum):
    """ICAO 9303 line grammar detected for an MRZ block."""

    TD3 = "TD3"  # 2 x 44, passport
    ID2 = "ID2"  # 2 x 36, French CNI
    TD1 = "TD1"  # 2 or 3 x 30, residence permit / compact ID
    UNKNOWN = "UNKNOWN"


class DocumentType(str, Enum):
    """Kind of identity document."""

    ID = "ID"
    PASSPORT = "PASSPORT"
    RESIDENCE_PERMIT = "RESIDENCE_PERMIT"
    DRIVING_LICENSE = "DRIVING_LICENSE"  # Free-text detection only
    UNKNOWN = "UNKNOWN"


class Sex(str, Enum):
    MALE = "M"
    FEMALE = "F"
    UNSPECIFIED = "X"


# ─── MRZ Block ──────────────────────────────────────────────────────


class MRZBlock(BaseModel):
    """Normalized MRZ lines plus the grammar they were classified as."""

    lines: list[str] = Field(default_factory=list)
    format: MRZFormat = MRZFormat.UNKNOWN

    @property
    def text(self) -> str:
        return "\n".join(self.lines)

    def describe(self) -> str:
        """Line count and lengths, e.g. '2 line(s), lengths: 36, 30'."""
        lengths = ", ".join(str(len(line)) for line in self.lines)
        return f"{len(self.lines)} line(s), lengths: {lengths or '-'}"


# ─── Identity Record ────────────────────────────────────────────────


class IdentityRecord(BaseModel):
    """Identity fields read from a document. Every field may be missing."""

    last_name: Optional[str] = None
    first_name: Optional[str] = None
    document_number: Optional[str] = None
    nationality: Optional[str] = None  # ICAO 3-letter code
    birth_date: Optional[str] = None  # YYYY-MM-DD
    sex: Optional[Sex] = None
    expiry_date: Optional[str] = None  # YYYY-MM-DD
    personal_number: Optional[str] = None
    issuing_country: Optional[str] = None
    birth_place: Optional[str] = None  # Free text only, never in the MRZ

    def resolved_fields(self) -> list[str]:
        """Names of the fields that hold a value."""
        return [name for name, value in self if value is not None]


# ─── Checksums ──────────────────────────────────────────────────────


class ChecksumResult(BaseModel):
    """Outcome of one check digit comparison."""

    expected: Optional[int] = Field(default=None, ge=0, le=9)  # Digit printed in the MRZ
    actual: int = Field(default=0, ge=0, le=9)  # Digit we computed
    valid: bool = False


class Checksums(BaseModel):
    document_number: ChecksumResult = Field(default_factory=ChecksumResult)
    birth_date: ChecksumResult = Field(default_factory=ChecksumResult)
    expiry_date: ChecksumResult = Field(default_factory=ChecksumResult)
    overall: Optional[ChecksumResult] = None  # TD3 composite only

    def results(self) -> list[ChecksumResult]:
        """All computed checksums, composite last when present."""
        found = [self.document_number, self.birth_date, self.expiry_date]
        if self.overall is not None:
            found.append(self.overall)
        return found


# ─── Results ────────────────────────────────────────────────────────


class ValidationResult(BaseModel):
    """The output of MRZ validation."""

    document_type: DocumentType = DocumentType.UNKNOWN
    mrz_format: MRZFormat = MRZFormat.UNKNOWN
    valid: bool = False
    errors: list[str] = Field(default_factory=list)  # Block automatic acceptance
    warnings: list[str] = Field(default_factory=list)  # Shown to a reviewer
    extracted_data: IdentityRecord = Field(default_factory=IdentityRecord)
    checksums: Checksums = Field(default_factory=Checksums)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class FraudAssessment(BaseModel):
    """Risk score plus the audit trail of every heuristic that fired."""

    suspicious_fraud: bool = False
    reasons: list[str] = Field(default_factory=list)
    risk_score: int = Field(default=0, ge=0, le=100)


class IdentityExtraction(BaseModel):
    """The final output of the identity pipeline."""

    document_type: DocumentType
    extracted_data: IdentityRecord
    validation: ValidationResult
    fraud: FraudAssessment
    confidence: float = Field(ge=0.0, le=1.0)
    manual_review_flag: bool
    mrz: Optional[str] = None  # Located MRZ block, if any
    ocr_confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    original_hash: str = ""  # SHA-256 of original OCR text for audit trail
