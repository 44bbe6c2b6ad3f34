"""Employee document schemas."""

import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from workforce.common.constants import DocumentType


class DocumentCreate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    employee_id: uuid.UUID
    document_name: str = Field(..., min_length=1, max_length=255)
    document_type: DocumentType
    file_url: str = Field(..., min_length=1, max_length=1000)
    file_name: Optional[str] = Field(None, max_length=255)
    file_size: Optional[int] = Field(None, ge=0)
    mime_type: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    issue_date: Optional[date] = None
    expiry_date: Optional[date] = None
    issuing_authority: Optional[str] = Field(None, max_length=255)
    document_number: Optional[str] = Field(None, max_length=100)
    is_confidential: bool = False

    @model_validator(mode="after")
    def _check_dates(self) -> "DocumentCreate":
        if self.issue_date and self.expiry_date and self.expiry_date < self.issue_date:
            raise ValueError("expiry_date must be on or after issue_date")
        return self


class DocumentUpdate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    document_name: Optional[str] = Field(None, min_length=1, max_length=255)
    document_type: Optional[DocumentType] = None
    file_url: Optional[str] = Field(None, min_length=1, max_length=1000)
    file_name: Optional[str] = Field(None, max_length=255)
    file_size: Optional[int] = Field(None, ge=0)
    mime_type: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    issue_date: Optional[date] = None
    expiry_date: Optional[date] = None
    issuing_authority: Optional[str] = Field(None, max_length=255)
    document_number: Optional[str] = Field(None, max_length=100)
    is_confidential: Optional[bool] = None


class DocumentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    document_name: str
    document_type: str
    file_url: str
    file_name: Optional[str] = None
    file_size: Optional[int] = None
    mime_type: Optional[str] = None
    description: Optional[str] = None
    issue_date: Optional[date] = None
    expiry_date: Optional[date] = None
    issuing_authority: Optional[str] = None
    document_number: Optional[str] = None
    is_confidential: bool
    created_at: datetime
    updated_at: datetime


class DocumentStats(BaseModel):
    total_documents: int
    by_type: dict[str, int]
    confidential: int
    expired: int
    expiring_soon: int
