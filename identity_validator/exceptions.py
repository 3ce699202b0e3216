"""
Exception hierarchy for identity validation.

The public operations never let these escape: malformed input is reported as
errors and warnings on the result. Exceptions mark internal seams where a
decoding step has to stop, and carry a machine-readable code for the report.
"""

from __future__ import annotations


class IdentityValidationError(Exception):
    """Base exception for all identity validation failures."""

    def __init__(self, code: str, message: str, details: dict | None = None):
        self.code = code
        self.details = details or {}
        super().__init__(message)


class MRZFormatError(IdentityValidationError):
    """The MRZ lines do not match any supported ICAO 9303 grammar."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("MRZ_FORMAT_UNRECOGNIZED", message, details)
