"""
SchoolDesk Backend — Term SQLAlchemy Model
============================================

What:  ORM model for the `terms` table, the term enums and the Partition key.
Why:   A school runs three terms per session. Exactly one term per school is
       the "current" one (status Active); reports, attendance and fee screens
       all read it.

Table Design Rationale:
    - school_id NULL means a global term that belongs to no school. Code never
      compares against None directly; it goes through Partition so a missing
      school id cannot silently widen a query to every school.
    - status is stored, not derived from dates. Administrators switch terms by
      hand, often before or after the calendar boundary.
    - uq_terms_one_active_per_school is a partial unique index over
      coalesce(school_id, '') restricted to Active rows. The lifecycle service
      keeps the invariant; the index turns a lost race into an IntegrityError
      instead of two current terms.
    - idx_terms_school_created backs "newest remaining term" promotion.
"""

import enum
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import (
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Uuid,
    cast,
    func,
    literal_column,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from schooldesk.database import Base


class TermName(str, enum.Enum):
    FIRST = "First"
    SECOND = "Second"
    THIRD = "Third"


class TermStatus(str, enum.Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Term(Base):
    """
    One academic term of one school (or of the global partition).

    Lifecycle:
        1. Created Active; every other Active term in the partition flips to Inactive
        2. Re-activated by update; siblings flip to Inactive first
        3. Deleted; if it was Active the newest remaining sibling becomes Active
    """

    __tablename__ = "terms"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    school_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=True,
        comment="Owning school; NULL for the global partition",
    )

    # "2024/2025"
    session: Mapped[str] = mapped_column(String(20), nullable=False)

    term: Mapped[TermName] = mapped_column(
        Enum(TermName, name="term_name", native_enum=False, length=10,
             values_callable=_enum_values),
        nullable=False,
    )

    start: Mapped[date] = mapped_column(Date, nullable=False)
    end: Mapped[date] = mapped_column(Date, nullable=False)
    next_term: Mapped[Optional[date]] = mapped_column(
        Date,
        nullable=True,
        comment="First day of the following term (printed on report cards)",
    )

    days_open: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[TermStatus] = mapped_column(
        Enum(TermStatus, name="term_status", native_enum=False, length=10,
             values_callable=_enum_values),
        nullable=False,
        default=TermStatus.ACTIVE,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    @property
    def partition(self) -> "Partition":
        return Partition(self.school_id)

    @property
    def is_active(self) -> bool:
        return self.status == TermStatus.ACTIVE

    def __repr__(self) -> str:
        return (
            f"<Term(id={self.id}, school_id={self.school_id}, session='{self.session}', "
            f"term='{self.term}', status='{self.status}')>"
        )


# Table column, not the ORM attribute: only a bound Column attaches a
# functional index to terms.
Index(
    "uq_terms_one_active_per_school",
    func.coalesce(cast(Term.__table__.c.school_id, String(36)), literal_column("''")),
    unique=True,
    postgresql_where=text("status = 'Active'"),
    sqlite_where=text("status = 'Active'"),
)
Index("idx_terms_school_created", Term.school_id, Term.created_at.desc())


@dataclass(frozen=True)
class Partition:
    """
    The grouping inside which at most one term may be Active.

    Partition(None) is the global partition. It is a real value, compared and
    hashed like any other, never a "no filter" shortcut.
    """

    school_id: Optional[uuid.UUID] = None

    def clause(self):
        """WHERE fragment selecting the terms of this partition."""
        if self.school_id is None:
            return Term.school_id.is_(None)
        return Term.school_id == self.school_id

    def __str__(self) -> str:
        return "global" if self.school_id is None else str(self.school_id)


GLOBAL_PARTITION = Partition(None)
