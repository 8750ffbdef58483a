"""Pydantic request/response schemas for the extraction API.

Fields are snake_case in Python and serialized in camelCase, matching
the column names of the record store.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.extraction.micr_parser import MicrFields
from src.extraction.record import ExtractedRecord


class CamelModel(BaseModel):
    """Base model serializing field names in camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RecordFields(CamelModel):
    """Banking fields of an extracted record."""

    account_name: str = ""
    account_number: str = ""
    routing_number: str = ""
    check_number: str = ""
    ifsc: str = ""
    bank_name: str = ""
    branch: str = ""
    created_at: str = ""

    @classmethod
    def from_record(cls, record: ExtractedRecord) -> "RecordFields":
        return cls(**record.fields(), created_at=record.created_at)


class MicrResponse(CamelModel):
    """Fields parsed from the MICR band."""

    routing: str = ""
    account: str = ""
    check_number: str = ""
    raw: str = ""
    routing_valid: bool = False

    @classmethod
    def from_micr(cls, micr: MicrFields) -> "MicrResponse":
        return cls(
            routing=micr.routing,
            account=micr.account,
            check_number=micr.check_number,
            raw=micr.raw,
            routing_valid=micr.routing_valid,
        )


class ExtractionResponse(CamelModel):
    """Outcome of one extraction request."""

    success: bool
    id: int | None = None
    fields: RecordFields | None = None
    raw_text: str = ""
    micr: MicrResponse | None = None
    error: str | None = None
    error_kind: str | None = None
    ocr_used: bool = False
    page_count: int = 0
    states: list[str] = Field(default_factory=list)
    degradations: list[str] = Field(default_factory=list)
    processing_time_ms: float = 0.0


class StoredRecordResponse(RecordFields):
    """A persisted record as returned by the listing endpoints."""

    id: int
    raw_text: str = ""
    raw_micr: str = ""


class RecordResponse(CamelModel):
    """Envelope for a single stored record."""

    success: bool = True
    data: StoredRecordResponse


class RecordListResponse(CamelModel):
    """One page of stored records."""

    success: bool = True
    data: list[StoredRecordResponse]
    total: int
    page: int
    page_size: int


class RecordUpdateRequest(CamelModel):
    """Manual corrections to a stored record. Omitted fields are unchanged."""

    account_name: str | None = None
    account_number: str | None = None
    routing_number: str | None = None
    check_number: str | None = None
    ifsc: str | None = None
    bank_name: str | None = None
    branch: str | None = None


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
    tesseract_available: bool
    poppler_available: bool
