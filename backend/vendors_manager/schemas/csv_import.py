from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class ImportPreviewRequest(BaseModel):
    csv_content: str = Field(..., min_length=1)


class ImportConfirmRequest(BaseModel):
    csv_content: str = Field(..., min_length=1)
    vendor_id: Optional[int] = None
    skip_duplicates: bool = True
    update_existing: bool = False


class FieldIssueResponse(BaseModel):
    field: str
    message: str
    value: Optional[str] = None


class ImportRowResponse(BaseModel):
    row_number: int
    original_data: Dict[str, str]
    parsed_data: dict
    status: str
    errors: List[FieldIssueResponse]
    warnings: List[FieldIssueResponse]
    is_duplicate: bool
    duplicate_info: Optional[dict] = None


class ImportPreviewResponse(BaseModel):
    rows: List[ImportRowResponse]
    stats: Dict[str, int]
    headers: List[str]
    expected_headers: List[str]
    header_mappings: Dict[str, str]
    missing_required_headers: List[str]
    parse_errors: List[str] = []


class ImportResultResponse(BaseModel):
    success: bool
    created: int
    updated: int
    skipped: int
    failed: int
    errors: List[dict]
    created_ids: List[int]
