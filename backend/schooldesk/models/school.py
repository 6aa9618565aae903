"""
SchoolDesk Backend — School SQLAlchemy Model
==============================================

What:  ORM model for the `schools` table.
Why:   Every non-super principal and every scoped term belongs to one school.
       The school id is the partition key of the term lifecycle.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from schooldesk.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class School(Base):
    """
    A school tenant.

    Deleting a school deletes its terms: ON DELETE CASCADE on terms.school_id,
    and SchoolService deletes them explicitly because SQLite only enforces
    foreign keys when the pragma is switched on.
    """

    __tablename__ = "schools"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        comment="Unique identifier",
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    subtitle: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    # e.g. "Primary", "Secondary", "Nursery & Primary"
    school_type: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    address: Mapped[str] = mapped_column(Text, nullable=False)

    contact_person: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    contact_person_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    contact_person_phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

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

    def __repr__(self) -> str:
        return f"<School(id={self.id}, name='{self.name}')>"
