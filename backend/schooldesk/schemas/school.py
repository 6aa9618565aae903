"""
SchoolDesk Backend — School Request/Response Schemas
======================================================

What:  Pydantic models for /api/schools.
Note:  Logo upload is handled elsewhere; these schemas carry text fields only.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

# Deliberately loose; deliverability is checked by the mail provider, not here
_EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class SchoolCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200, description="School name")
    subtitle: Optional[str] = Field(default=None, max_length=200)
    school_type: str = Field(min_length=1, max_length=100, description="e.g. Primary, Secondary")
    email: str = Field(pattern=_EMAIL_PATTERN, max_length=255)
    phone: Optional[str] = Field(default=None, min_length=1, max_length=50)
    address: str = Field(min_length=1)
    contact_person: Optional[str] = Field(default=None, max_length=200)
    contact_person_email: Optional[str] = Field(default=None, pattern=_EMAIL_PATTERN, max_length=255)
    contact_person_phone: Optional[str] = Field(default=None, max_length=50)


# Optional columns; the rest must keep a value once set
_NULLABLE_UPDATE_FIELDS = {
    "subtitle",
    "phone",
    "contact_person",
    "contact_person_email",
    "contact_person_phone",
}


class SchoolUpdate(BaseModel):
    """Body of PUT /api/schools/{id}. Partial: only supplied fields change."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    subtitle: Optional[str] = Field(default=None, max_length=200)
    school_type: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[str] = Field(default=None, pattern=_EMAIL_PATTERN, max_length=255)
    phone: Optional[str] = Field(default=None, min_length=1, max_length=50)
    address: Optional[str] = Field(default=None, min_length=1)
    contact_person: Optional[str] = Field(default=None, max_length=200)
    contact_person_email: Optional[str] = Field(default=None, pattern=_EMAIL_PATTERN, max_length=255)
    contact_person_phone: Optional[str] = Field(default=None, max_length=50)

    @model_validator(mode="after")
    def reject_explicit_nulls(self) -> "SchoolUpdate":
        for name in self.model_fields_set:
            if name not in _NULLABLE_UPDATE_FIELDS and getattr(self, name) is None:
                raise ValueError(f"'{name}' cannot be null")
        return self

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class SchoolResponse(BaseModel):
    id: uuid.UUID
    name: str
    subtitle: Optional[str] = None
    school_type: str
    email: str
    phone: Optional[str] = None
    address: str
    contact_person: Optional[str] = None
    contact_person_email: Optional[str] = None
    contact_person_phone: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class SchoolListResponse(BaseModel):
    data: List[SchoolResponse]
    total: int
