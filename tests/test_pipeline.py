"""
End-to-end tests for the identity pipeline: locate, validate, extract, merge.

The reference date is pinned so century folding and expiry warnings do not
drift with the calendar.
"""

from __future__ import annotations

import hashlib
import logging
from datetime import date

import pytest

from identity_validator import pipeline as pipeline_module
from identity_validator.models import DocumentType, IdentityRecord, MRZFormat, Sex
from identity_validator.pipeline import (
    IdentityVerificationPipeline,
    extract_identity,
    merge_records,
)


# ─── Test Data ───────────────────────────────────────────────────────

TODAY = date(2026, 10, 18)

# Same card as main.py: printed fields followed by its ID2 MRZ.
RAW_CARD = """\
RÉPUBLIQUE FRANÇAISE
CARTE NATIONALE D'IDENTITÉ  N° : 880692310285
Nom :  MARTIN
Prénom(s) : Jean,  Pierre
Sexe : M   Né(e) le : 01.01.1990
à  LYON (69)
IDFRAMARTIN<<<<<<<<<<<<<<<<<<<<<<<<<
8806923102858FRA9001011M3001019<<<<<
"""

ICAO_LINE1 = "P<UTOERIKSSON<<ANNA<MARIA<<<<<<<<<<<<<<<<<<<"
ICAO_LINE2 = "L898902C36UTO7408122F1204159ZE184226B<<<<<10"

PRINTED_PASSPORT = """\
PASSEPORT
Nom : Dupont
Prénom(s) : Paul
Né(e) le : 02.02.1980
"""


def _broken_icao_line2() -> str:
    """Document number and birth date check digits both wrong."""
    line = list(ICAO_LINE2)
    line[9] = "0"
    line[19] = "0"
    return "".join(line)


@pytest.fixture
def pipeline() -> IdentityVerificationPipeline:
    return IdentityVerificationPipeline(today=TODAY)


# ═══════════════════════════════════════════════════════════════════════
# FULL RUN
# ═══════════════════════════════════════════════════════════════════════


class TestFullRun:
    def test_card_fields(self, pipeline):
        data = pipeline.run(RAW_CARD).extracted_data
        assert data.last_name == "MARTIN"
        assert data.first_name == "JEAN PIERRE"
        assert data.birth_date == "1990-01-01"
        assert data.birth_place == "LYON"
        assert data.sex == Sex.MALE
        assert data.nationality == "FRA"
        assert data.document_number == "880692310285"
        assert data.expiry_date == "2030-01-01"
        assert data.issuing_country == "FRA"

    def test_card_passes_automatic_checks(self, pipeline):
        result = pipeline.run(RAW_CARD)
        assert result.document_type == DocumentType.ID
        assert result.validation.mrz_format == MRZFormat.ID2
        assert result.validation.valid is True
        assert result.confidence == 1.0
        assert result.fraud.risk_score == 0
        assert result.manual_review_flag is False

    def test_located_mrz_is_reported(self, pipeline):
        result = pipeline.run(RAW_CARD)
        assert result.mrz == (
            "IDFRAMARTIN<<<<<<<<<<<<<<<<<<<<<<<<<\n"
            "8806923102858FRA9001011M3001019<<<<<"
        )

    def test_punctuation_after_mrz_line_is_tolerated(self, pipeline):
        noisy = RAW_CARD.replace("3001019<<<<<\n", "3001019<<<<<.\n")
        result = pipeline.run(noisy, ocr_confidence=90)
        assert result.validation.mrz_format == MRZFormat.ID2
        assert result.validation.valid is True
        assert result.extracted_data.issuing_country == "FRA"
        assert result.manual_review_flag is False

    def test_audit_hash(self, pipeline):
        result = pipeline.run(RAW_CARD)
        assert len(result.original_hash) == 64
        assert result.original_hash == hashlib.sha256(RAW_CARD.encode("utf-8")).hexdigest()

    def test_module_level_entry_point(self):
        result = extract_identity(RAW_CARD, ocr_confidence=90)
        assert result.extracted_data.last_name == "MARTIN"
        assert result.ocr_confidence == pytest.approx(0.9)


# ═══════════════════════════════════════════════════════════════════════
# MERGING
# ═══════════════════════════════════════════════════════════════════════


class TestMerge:
    def test_trusted_mrz_overrides_printed_fields(self, pipeline):
        result = pipeline.run(f"{PRINTED_PASSPORT}{ICAO_LINE1}\n{ICAO_LINE2}")
        data = result.extracted_data
        assert result.document_type == DocumentType.PASSPORT
        assert data.last_name == "ERIKSSON"
        assert data.first_name == "ANNA MARIA"
        assert data.birth_date == "1974-08-12"
        assert data.document_number == "L898902C3"
        assert data.issuing_country == "UTO"
        assert data.personal_number == "ZE184226B"
        assert result.confidence == 1.0

    def test_expired_document_still_trusted(self, pipeline):
        result = pipeline.run(f"{PRINTED_PASSPORT}{ICAO_LINE1}\n{ICAO_LINE2}")
        assert "Document expired on 2012-04-15" in result.validation.warnings
        assert result.validation.valid is True

    def test_untrusted_mrz_contributes_nothing(self, pipeline):
        result = pipeline.run(f"{PRINTED_PASSPORT}{ICAO_LINE1}\n{_broken_icao_line2()}")
        data = result.extracted_data
        assert result.validation.valid is False
        assert result.validation.confidence <= 0.5
        assert data.last_name == "DUPONT"
        assert data.first_name == "PAUL"
        assert data.birth_date == "1980-02-02"
        assert data.issuing_country is None
        assert data.personal_number is None

    def test_untrusted_mrz_falls_back_to_ocr_confidence(self, pipeline):
        result = pipeline.run(f"{PRINTED_PASSPORT}{ICAO_LINE1}\n{_broken_icao_line2()}", 80)
        assert result.confidence == pytest.approx(0.8)

    def test_broken_mrz_raises_fraud_and_review(self, pipeline):
        result = pipeline.run(f"{PRINTED_PASSPORT}{ICAO_LINE1}\n{_broken_icao_line2()}")
        assert result.fraud.suspicious_fraud is True
        assert result.fraud.risk_score == 70
        assert result.manual_review_flag is True

    def test_text_fills_fields_the_mrz_lacks(self):
        text = IdentityRecord(first_name="JEAN", birth_place="LYON")
        mrz = IdentityRecord(last_name="MARTIN", issuing_country="FRA")
        merged = merge_records(text, mrz, mrz_trusted=True)
        assert merged.last_name == "MARTIN"
        assert merged.first_name == "JEAN"
        assert merged.birth_place == "LYON"
        assert merged.issuing_country == "FRA"

    def test_merge_does_not_mutate_inputs(self):
        text = IdentityRecord(last_name="DUPONT")
        merge_records(text, IdentityRecord(last_name="MARTIN"), mrz_trusted=True)
        assert text.last_name == "DUPONT"


# ═══════════════════════════════════════════════════════════════════════
# NO MRZ
# ═══════════════════════════════════════════════════════════════════════


class TestWithoutMRZ:
    def test_printed_fields_only(self, pipeline):
        result = pipeline.run(PRINTED_PASSPORT, ocr_confidence=85)
        assert result.mrz is None
        assert result.validation.errors == ["No MRZ block found in OCR text"]
        assert result.validation.mrz_format == MRZFormat.UNKNOWN
        assert result.extracted_data.last_name == "DUPONT"
        assert result.fraud.risk_score == 0
        assert result.confidence == pytest.approx(0.85)
        assert result.manual_review_flag is False

    def test_poor_read_with_no_fields_needs_review(self, pipeline):
        result = pipeline.run("illegible scan ###", ocr_confidence=20)
        assert result.extracted_data.resolved_fields() == []
        assert result.manual_review_flag is True

    def test_poor_read_with_fields_does_not_need_review(self, pipeline):
        result = pipeline.run(PRINTED_PASSPORT, ocr_confidence=20)
        assert result.manual_review_flag is False

    def test_missing_ocr_confidence_uses_merged_confidence(self, pipeline):
        result = pipeline.run("illegible scan ###")
        assert result.confidence == 0.0
        assert result.manual_review_flag is True


# ═══════════════════════════════════════════════════════════════════════
# ROBUSTNESS
# ═══════════════════════════════════════════════════════════════════════


class TestRobustness:
    @pytest.mark.parametrize(("raw", "expected"), [(150, 1.0), (-5, 0.0), (42, 0.42)])
    def test_ocr_confidence_is_clamped(self, pipeline, raw, expected):
        result = pipeline.run(PRINTED_PASSPORT, ocr_confidence=raw)
        assert result.ocr_confidence == pytest.approx(expected)

    def test_unexpected_failure_degrades(self, pipeline, monkeypatch, caplog):
        def _explode(raw_text):
            raise RuntimeError("boom")

        monkeypatch.setattr(pipeline_module, "extract_with_regex", _explode)
        with caplog.at_level(logging.ERROR, logger="identity_validator.pipeline"):
            result = pipeline.run(RAW_CARD, ocr_confidence=70)

        assert result.document_type == DocumentType.UNKNOWN
        assert result.confidence == 0.0
        assert result.manual_review_flag is True
        assert result.extracted_data.resolved_fields() == []
        assert result.ocr_confidence == pytest.approx(0.7)
        assert len(result.original_hash) == 64
        assert "Identity pipeline failed" in caplog.text

    def test_empty_text(self, pipeline):
        result = pipeline.run("")
        assert result.mrz is None
        assert result.manual_review_flag is True
