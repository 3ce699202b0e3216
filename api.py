"""
Identity Validator — FastAPI Server
===================================

RESTful API for validating OCR text read from identity documents.

Endpoints:
    POST /mrz/validate              Validate an MRZ block (ICAO 9303 checksums)
    POST /mrz/fraud                 Fraud risk assessment of an MRZ block
    POST /identity/extract          Full extraction from raw OCR text
    POST /identity/extract/file     Upload a text file for extraction
    GET  /health                    Health check / readiness probe

Run:
    uvicorn api:app --reload              # Dev (http://localhost:8000)
    uvicorn api:app --host 0.0.0.0        # Production

Docs:
    http://localhost:8000/docs             # Swagger UI (auto-generated)
    http://localhost:8000/redoc            # ReDoc (alternative)
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, UploadFile
from pydantic import BaseModel, Field

from identity_validator import __version__
from identity_validator.config import Settings, configure_logging, load_settings
from identity_validator.fraud import detect_mrz_fraud
from identity_validator.models import FraudAssessment, IdentityExtraction, ValidationResult
from identity_validator.mrz import validate_mrz
from identity_validator.pipeline import IdentityVerificationPipeline

# ─── Load .env if available ──────────────────────────────────────────
try:
    from dotenv import load_dotenv

    load_dotenv()
except ImportError:
    pass


# ─── Application Lifespan ────────────────────────────────────────────

_pipeline: IdentityVerificationPipeline | None = None
_settings: Settings = load_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging and build the pipeline on startup."""
    global _pipeline  # noqa: PLW0603
    configure_logging(_settings)
    _pipeline = IdentityVerificationPipeline()
    yield
    _pipeline = None


# ─── FastAPI App ─────────────────────────────────────────────────────

app = FastAPI(
    title="Identity Validator API",
    description=(
        "Deterministic validation of OCR-read identity documents. "
        "ICAO 9303 MRZ decoding and check digits, free-text field extraction, "
        "fraud heuristics with an auditable reason trail."
    ),
    version=__version__,
    lifespan=lifespan,
)

SAMPLE_MRZ = (
    "P<UTOERIKSSON<<ANNA<MARIA<<<<<<<<<<<<<<<<<<<\n"
    "L898902C36UTO7408122F1204159ZE184226B<<<<<10"
)


# ─── Request / Response Schemas ─────────────────────────────────────


class MRZRequest(BaseModel):
    """Request body for the /mrz endpoints."""

    mrz: str = Field(
        ...,
        min_length=1,
        description="The MRZ lines, newline separated.",
        json_schema_extra={"example": SAMPLE_MRZ},
    )


class ExtractRequest(BaseModel):
    """Request body for the /identity/extract endpoint."""

    raw_ocr_text: str = Field(
        ...,
        min_length=_settings.min_text_length,
        description="The raw OCR text of the identity document.",
        json_schema_extra={
            "example": (
                "RÉPUBLIQUE FRANÇAISE\n"
                "CARTE NATIONALE D'IDENTITÉ\n"
                "Nom: ERIKSSON\n"
                "Prénom(s): ANNA MARIA\n"
                f"{SAMPLE_MRZ}"
            )
        },
    )
    ocr_confidence: Optional[float] = Field(
        default=None, ge=0, le=100, description="Upstream OCR engine confidence (0-100)."
    )


class HealthResponse(BaseModel):
    status: str
    version: str


# ─── Helpers ─────────────────────────────────────────────────────────


def _get_pipeline() -> IdentityVerificationPipeline:
    if _pipeline is None:
        raise HTTPException(status_code=503, detail="Pipeline not initialised")
    return _pipeline


# ─── Endpoints ───────────────────────────────────────────────────────


@app.post("/mrz/validate", summary="Validate an MRZ block", tags=["MRZ"])
def validate_mrz_endpoint(request: MRZRequest) -> ValidationResult:
    """Decode the MRZ and verify every ICAO 9303 check digit.

    Malformed input is not an HTTP error: it comes back with **valid** set to
    `false` and the reasons in **errors**.
    """
    return validate_mrz(request.mrz)


@app.post("/mrz/fraud", summary="Score an MRZ block for fraud signals", tags=["MRZ"])
def detect_fraud_endpoint(request: MRZRequest) -> FraudAssessment:
    """Returns the risk score (0-100) and every heuristic that fired."""
    return detect_mrz_fraud(request.mrz)


@app.post(
    "/identity/extract",
    summary="Extract identity fields from raw OCR text",
    tags=["Identity"],
    responses={503: {"description": "Pipeline not yet initialised"}},
)
def extract_identity_endpoint(request: ExtractRequest) -> IdentityExtraction:
    """Run the full pipeline: MRZ validation, free-text extraction, fraud
    heuristics and merge.

    - **extracted_data**: the merged identity record
    - **validation**: the MRZ validation result
    - **fraud**: risk score with reasons
    - **manual_review_flag**: `true` when a human must look at the document
    """
    pipeline = _get_pipeline()
    return pipeline.run(request.raw_ocr_text, request.ocr_confidence)


@app.post(
    "/identity/extract/file",
    summary="Extract identity fields from an uploaded text file",
    tags=["Identity"],
    responses={
        413: {"description": "File too large"},
        400: {"description": "File is not valid UTF-8 text"},
        422: {"description": "File content too short to be a document"},
        503: {"description": "Pipeline not yet initialised"},
    },
)
async def extract_identity_file(file: UploadFile) -> IdentityExtraction:
    """Upload a `.txt` file containing raw OCR text for extraction."""
    if file.size and file.size > _settings.max_upload_bytes:
        raise HTTPException(status_code=413, detail="File too large")

    content = await file.read()
    try:
        raw_text = content.decode("utf-8")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="File must be UTF-8 encoded text")

    if len(raw_text.strip()) < _settings.min_text_length:
        raise HTTPException(status_code=422, detail="File content too short to be a document")

    pipeline = _get_pipeline()
    return await asyncio.to_thread(pipeline.run, raw_text)


@app.get(
    "/health",
    summary="Health check",
    tags=["System"],
    responses={503: {"description": "Pipeline not yet initialised"}},
)
def health_check() -> HealthResponse:
    """Returns service status and version."""
    _get_pipeline()
    return HealthResponse(status="healthy", version=__version__)
