"""
Identity Validator — Deterministic checks for OCR-scanned identity documents.

Architecture: MRZ decode (ICAO 9303) + free-text extraction → Fraud heuristics → Merge
Philosophy:  Trust the check digits. Flag everything else for a human.
"""

__version__ = "1.0.0"
