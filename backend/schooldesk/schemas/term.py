"""
SchoolDesk Backend — Term Request/Response Schemas
====================================================

What:  Pydantic models for the /api/terms contract.
How:   Shape checks live here (types, enums, required fields, days_open ≥ 1).
       Business rules that need more than one field of stored state, such as
       "start must be before end after a partial update", live in TermService.

Field names:
    Snake case is canonical. The dashboard historically posts `nextterm`,
    `daysopen` and `schoolId`, so those spellings are accepted on input.
"""

import uuid
from datetime import date, datetime
from typing import Annotated, List, Optional, Union

from pydantic import AliasChoices, BaseModel, Field, model_validator

from schooldesk.models.term import TermName, TermStatus

# next_term is the only column an update may clear
_NULLABLE_UPDATE_FIELDS = {"next_term"}


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class TermCreate(BaseModel):
    """
    Body of POST /api/terms.

    There is no status field: a new term is always created Active and the
    previous current term of the same school is switched off.
    """
    session: str = Field(min_length=1, max_length=20, description="Academic session, e.g. 2024/2025")
    term: TermName = Field(description="First, Second or Third")
    start: date = Field(description="First day of the term")
    end: date = Field(description="Last day of the term")
    next_term: Optional[date] = Field(
        default=None,
        validation_alias=AliasChoices("next_term", "nextterm"),
        description="First day of the following term",
    )
    days_open: Optional[int] = Field(
        default=None,
        ge=1,
        validation_alias=AliasChoices("days_open", "daysopen"),
        description="School days open; computed from start/end when omitted",
    )
    school_id: Optional[uuid.UUID] = Field(
        default=None,
        validation_alias=AliasChoices("school_id", "schoolId", "schoolid"),
        description="Owning school. Omit for the caller's own school (or global for super users)",
    )


class TermUpdate(BaseModel):
    """
    Body of PUT /api/terms/{id}. Partial: only supplied fields change.

    Sending `"status": "Active"` makes this the current term of its school.
    """
    session: Optional[str] = Field(default=None, min_length=1, max_length=20)
    term: Optional[TermName] = None
    start: Optional[date] = None
    end: Optional[date] = None
    next_term: Optional[date] = Field(
        default=None, validation_alias=AliasChoices("next_term", "nextterm")
    )
    days_open: Optional[int] = Field(
        default=None, ge=1, validation_alias=AliasChoices("days_open", "daysopen")
    )
    status: Optional[TermStatus] = None

    @model_validator(mode="after")
    def reject_explicit_nulls(self) -> "TermUpdate":
        for name in self.model_fields_set:
            if name not in _NULLABLE_UPDATE_FIELDS and getattr(self, name) is None:
                raise ValueError(f"'{name}' cannot be null")
        return self

    def changes(self) -> dict:
        """Only the fields the client actually sent."""
        return self.model_dump(exclude_unset=True)


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class TermSummary(BaseModel):
    """Reduced term shape for pickers and dropdowns (`?minimal=true`)."""
    id: uuid.UUID
    school_id: Optional[uuid.UUID] = Field(description="Owning school; null for global terms")
    session: str
    term: TermName
    status: TermStatus
    start: date
    end: date

    model_config = {"from_attributes": True}


class TermResponse(TermSummary):
    next_term: Optional[date] = None
    days_open: int
    created_at: datetime
    updated_at: datetime


class TermListResponse(BaseModel):
    """
    Page of terms. Ordered Active first, then newest first.

    `total` counts every term matching the filters, not just this page.
    Items are full terms, or summaries when the list was requested minimal.
    """
    data: List[Annotated[Union[TermResponse, TermSummary], Field(union_mode="left_to_right")]]
    total: int
