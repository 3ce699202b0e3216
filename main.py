#!/usr/bin/env python3
"""
Identity Validator — Entry Point
================================

Demonstrates the full pipeline on a sample OCR-scanned identity card.

Usage:
    python main.py                    # Built-in sample card
    python main.py scan.txt           # OCR text read from a file
    IDV_LOG_LEVEL=DEBUG python main.py
"""

from __future__ import annotations

import sys
from pathlib import Path

from identity_validator.config import configure_logging, load_settings
from identity_validator.models import IdentityExtraction
from identity_validator.pipeline import IdentityVerificationPipeline

# ─── Load .env if available (optional dependency) ────────────────────
try:
    from dotenv import load_dotenv

    load_dotenv()
except ImportError:
    pass


# ─── Sample OCR Output — Noisy on Purpose ────────────────────────────

RAW_OCR_TEXT = """\
RÉPUBLIQUE FRANÇAISE
CARTE NATIONALE D'IDENTITÉ  N° : 880692310285
Nom :  MARTIN
Prénom(s) : Jean,  Pierre
Sexe : M   Né(e) le : 01.01.1990
à  LYON (69)
IDFRAMARTIN<<<<<<<<<<<<<<<<<<<<<<<<<
8806923102858FRA9001011M3001019<<<<<
"""


# ─── ANSI Color Constants ───────────────────────────────────────────

_RED = "\033[91m"
_YELLOW = "\033[93m"
_GREEN = "\033[92m"
_CYAN = "\033[96m"
_DIM = "\033[2m"
_BOLD = "\033[1m"
_RESET = "\033[0m"
_WIDTH = 72


# ─── Pretty Printer Helpers ─────────────────────────────────────────


def _print_identity(result: IdentityExtraction) -> None:
    """Print the merged identity fields."""
    data = result.extracted_data
    for label, value in (
        ("Last name", data.last_name),
        ("First name", data.first_name),
        ("Sex", data.sex.value if data.sex else None),
        ("Born", data.birth_date),
        ("Birthplace", data.birth_place),
        ("Nationality", data.nationality),
        ("Number", data.document_number),
        ("Expires", data.expiry_date),
        ("Issuer", data.issuing_country),
    ):
        shown = value if value is not None else f"{_DIM}-{_RESET}"
        print(f"  {label + ':':<13}{shown}")


def _print_messages(messages: list[str], color: str, label: str) -> None:
    if not messages:
        return
    print(f"\n  {color}{_BOLD}{label} ({len(messages)}){_RESET}")
    for message in messages:
        print(f"    {color}-{_RESET} {message}")


def _print_checksums(result: IdentityExtraction) -> None:
    checksums = result.validation.checksums
    print(f"  {_CYAN}CHECK DIGITS{_RESET}")
    for label, check in (
        ("number", checksums.document_number),
        ("birth", checksums.birth_date),
        ("expiry", checksums.expiry_date),
        ("composite", checksums.overall),
    ):
        if check is None:
            continue
        mark = f"{_GREEN}ok{_RESET}" if check.valid else f"{_RED}FAIL{_RESET}"
        print(f"    {label:<10} printed={check.expected} computed={check.actual} {mark}")


# ─── Pretty Printer ─────────────────────────────────────────────────


def print_report(result: IdentityExtraction) -> int:
    """Pretty-print the extraction with ANSI color codes.

    Returns:
        0 if the document can be processed automatically, 1 if it needs review.
    """
    print(f"\n{'=' * _WIDTH}")
    print(f"{_BOLD}{_CYAN}  IDENTITY VALIDATION REPORT{_RESET}")
    print(f"{'=' * _WIDTH}")
    print(f"  Document:    {result.document_type.value} (MRZ {result.validation.mrz_format.value})")
    print(f"  Audit Hash:  {_DIM}{result.original_hash[:16]}...{_RESET}")
    print(f"  Confidence:  {result.confidence:.0%}")
    print(f"{'─' * _WIDTH}")
    _print_identity(result)
    print(f"{'─' * _WIDTH}")
    _print_checksums(result)

    _print_messages(result.validation.errors, _RED, "ERRORS")
    _print_messages(result.validation.warnings, _YELLOW, "WARNINGS")
    _print_messages(result.fraud.reasons, _RED, f"FRAUD SIGNALS, score {result.fraud.risk_score}")

    print(f"\n{'=' * _WIDTH}")
    if result.manual_review_flag:
        print(f"  {_RED}{_BOLD}MANUAL REVIEW REQUIRED{_RESET}")
    else:
        print(f"  {_GREEN}{_BOLD}DOCUMENT PASSED AUTOMATIC CHECKS{_RESET}")
    print(f"{'=' * _WIDTH}\n")

    return 1 if result.manual_review_flag else 0


# ─── Main ────────────────────────────────────────────────────────────


def main():
    """Run the pipeline on the sample (or a file given on the command line)."""
    configure_logging(load_settings())

    raw_text = Path(sys.argv[1]).read_text(encoding="utf-8") if len(sys.argv) > 1 else RAW_OCR_TEXT
    pipeline = IdentityVerificationPipeline()
    result = pipeline.run(raw_text)
    exit_code = print_report(result)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
