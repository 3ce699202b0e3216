"""
Tests for the free-text field extractor and nationality resolution.

Each locale's labels are exercised on their own, then the ranking between
them is checked: the first matching pattern wins even when a lower-ranked
label appears earlier in the text.
"""

from __future__ import annotations

import pytest

from identity_validator.countries import fold_accents, resolve_nationality
from identity_validator.extractor_regex import (
    FIELD_PATTERNS,
    clean_name,
    detect_document_type,
    extract_with_regex,
)
from identity_validator.models import DocumentType, Sex


# ─── Test Data ───────────────────────────────────────────────────────

FRENCH_CARD = """\
RÉPUBLIQUE FRANÇAISE
CARTE NATIONALE D'IDENTITÉ  N° : 880692310285
Nom :  Martin
Prénom(s) : Jean,  Pierre
Sexe : M   Né(e) le : 01.01.1990
à  LYON (69)
"""

ENGLISH_PASSPORT = """\
UNITED KINGDOM OF GREAT BRITAIN
PASSPORT
Surname: Smith
Given names: John Paul
Date of birth: 15/03/1985
Place of birth: London
Sex: M
Nationality: British
Passport No: 123456789
Date of expiry: 14-03-2031
"""


# ═══════════════════════════════════════════════════════════════════════
# FRENCH LABELS
# ═══════════════════════════════════════════════════════════════════════


class TestFrenchCard:
    def test_names(self):
        record = extract_with_regex(FRENCH_CARD)
        assert record.last_name == "MARTIN"
        assert record.first_name == "JEAN PIERRE"

    def test_birth(self):
        record = extract_with_regex(FRENCH_CARD)
        assert record.birth_date == "1990-01-01"
        assert record.birth_place == "LYON"

    def test_sex_and_number(self):
        record = extract_with_regex(FRENCH_CARD)
        assert record.sex == Sex.MALE
        assert record.document_number == "880692310285"

    def test_issuer_header_is_not_a_nationality(self):
        assert extract_with_regex(FRENCH_CARD).nationality is None

    def test_nationality_keyword_outside_header(self):
        assert extract_with_regex(FRENCH_CARD + "Nationalité Française").nationality == "FRA"

    def test_fields_the_text_never_carries_stay_none(self):
        record = extract_with_regex(FRENCH_CARD)
        assert record.expiry_date is None
        assert record.issuing_country is None
        assert record.personal_number is None

    def test_labels_on_one_line_are_split(self):
        record = extract_with_regex("NOM : MARTIN PRÉNOM : JEAN")
        assert record.last_name == "MARTIN"
        assert record.first_name == "JEAN"

    def test_value_on_next_line(self):
        assert extract_with_regex("NOM\nDUPONT").last_name == "DUPONT"

    def test_label_is_never_taken_as_value(self):
        record = extract_with_regex("NOM\nPRÉNOM : JEAN")
        assert record.last_name is None
        assert record.first_name == "JEAN"

    def test_usage_name_label(self):
        assert extract_with_regex("Nom d'usage : Durand").last_name == "DURAND"

    def test_birthplace_label(self):
        assert extract_with_regex("Lieu de naissance : Marseille").birth_place == "MARSEILLE"

    def test_expiry_labels(self):
        assert extract_with_regex("Valable jusqu'au : 12.05.2031").expiry_date == "2031-05-12"
        assert extract_with_regex("Date d'expiration 12/05/2031").expiry_date == "2031-05-12"

    def test_feminine_keyword(self):
        assert extract_with_regex("FÉMININ").sex == Sex.FEMALE

    def test_card_number_label(self):
        assert extract_with_regex("N° de carte : AB1234567C89").document_number == "AB1234567C89"


# ═══════════════════════════════════════════════════════════════════════
# ENGLISH LABELS
# ═══════════════════════════════════════════════════════════════════════


class TestEnglishPassport:
    def test_all_fields(self):
        record = extract_with_regex(ENGLISH_PASSPORT)
        assert record.last_name == "SMITH"
        assert record.first_name == "JOHN PAUL"
        assert record.birth_date == "1985-03-15"
        assert record.birth_place == "LONDON"
        assert record.sex == Sex.MALE
        assert record.nationality == "GBR"
        assert record.document_number == "123456789"
        assert record.expiry_date == "2031-03-14"

    def test_female_is_not_read_as_male(self):
        assert extract_with_regex("FEMALE").sex == Sex.FEMALE


# ═══════════════════════════════════════════════════════════════════════
# RANKING & NORMALIZATION
# ═══════════════════════════════════════════════════════════════════════


class TestRanking:
    def test_french_label_outranks_earlier_english_label(self):
        record = extract_with_regex("SURNAME: SMITH\nNOM: DUPONT")
        assert record.last_name == "DUPONT"

    def test_labeled_date_outranks_generic_date(self):
        record = extract_with_regex("Délivrée le 05.05.2015\nDate de naissance : 01.02.1980")
        assert record.birth_date == "1980-02-01"

    def test_generic_date_fallback(self):
        assert extract_with_regex("issued somewhere 03.04.1975").birth_date == "1975-04-03"

    def test_invalid_winning_date_leaves_field_unset(self):
        record = extract_with_regex("Date de naissance : 32.13.1990\n01.01.1990")
        assert record.birth_date is None

    def test_french_rules_precede_english_rules_per_field(self):
        rank = {"fr": 0, "en": 1, "generic": 2}
        by_field: dict[str, list[int]] = {}
        for rule in FIELD_PATTERNS:
            by_field.setdefault(rule.field, []).append(rank[rule.locale])
        for field, ranks in by_field.items():
            assert ranks == sorted(ranks), field

    def test_every_identity_field_has_rules(self):
        fields = {rule.field for rule in FIELD_PATTERNS}
        assert fields == {
            "last_name", "first_name", "birth_date", "birth_place",
            "sex", "nationality", "document_number", "expiry_date",
        }

    def test_empty_text(self):
        assert extract_with_regex("").resolved_fields() == []


class TestCleanName:
    def test_keeps_hyphens_and_apostrophes(self):
        assert clean_name("  jean-luc  d'artagnan ") == "JEAN-LUC D'ARTAGNAN"

    def test_max_four_words(self):
        assert clean_name("A B C D E") == "A B C D"

    def test_stops_at_label(self):
        assert clean_name("MARTIN SEXE") == "MARTIN"

    def test_nothing_left_is_none(self):
        assert clean_name("123 :") is None


# ═══════════════════════════════════════════════════════════════════════
# DOCUMENT TYPE
# ═══════════════════════════════════════════════════════════════════════


class TestDocumentType:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("PASSEPORT\nRÉPUBLIQUE FRANÇAISE", DocumentType.PASSPORT),
            ("Travel document", DocumentType.PASSPORT),
            ("TITRE DE SÉJOUR", DocumentType.RESIDENCE_PERMIT),
            ("Residence permit", DocumentType.RESIDENCE_PERMIT),
            ("PERMIS DE CONDUIRE", DocumentType.DRIVING_LICENSE),
            ("Driving licence", DocumentType.DRIVING_LICENSE),
            ("CARTE NATIONALE D'IDENTITÉ", DocumentType.ID),
            ("Identity card", DocumentType.ID),
            ("P<UTOERIKSSON<<ANNA", DocumentType.PASSPORT),
            ("I<FRADUPONT<<CLAIRE", DocumentType.ID),
            ("nothing useful here", DocumentType.ID),
        ],
    )
    def test_detection(self, text, expected):
        assert detect_document_type(text) == expected

    def test_passport_keyword_outranks_id_keyword(self):
        assert detect_document_type("IDENTITY CARD / PASSPORT") == DocumentType.PASSPORT


# ═══════════════════════════════════════════════════════════════════════
# NATIONALITY RESOLUTION
# ═══════════════════════════════════════════════════════════════════════


class TestNationality:
    def test_accent_folding(self):
        assert fold_accents("Française") == "FRANCAISE"

    def test_exact_demonym(self):
        match = resolve_nationality("FRANÇAISE")
        assert match is not None
        assert match.code == "FRA"
        assert match.confidence == 1.0

    def test_code_passthrough(self):
        assert resolve_nationality("D").code == "D"
        assert resolve_nationality("bel").code == "BEL"

    def test_ocr_slip_is_fuzzy_matched(self):
        match = resolve_nationality("FRANCAISF")
        assert match is not None
        assert match.code == "FRA"
        assert match.confidence < 1.0

    def test_unrelated_word_is_rejected(self):
        assert resolve_nationality("BANANA") is None
        assert resolve_nationality("   ") is None

    def test_label_then_code(self):
        assert extract_with_regex("NATIONALITÉ : ITA").nationality == "ITA"

    def test_bilingual_label_on_french_permit(self):
        text = "RÉPUBLIQUE FRANÇAISE\nTITRE DE SÉJOUR\nNATIONALITÉ / NATIONALITY\nMarocaine"
        assert extract_with_regex(text).nationality == "MAR"

    def test_unresolvable_labeled_value_leaves_field_unset(self):
        assert extract_with_regex("NATIONALITÉ : XYZZY\nFRANÇAISE").nationality is None
