"""
SchoolDesk Backend — School Service
=====================================

What:  Create, read, update and delete schools.
Why:   Schools are the partitions of the term lifecycle; deleting one must
       take its terms with it.
"""

import logging
import uuid
from typing import Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import delete, desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from schooldesk.exceptions import NotFoundError, UnexpectedError, ValidationError
from schooldesk.models.school import School
from schooldesk.models.term import Term
from schooldesk.schemas.school import SchoolCreate, SchoolUpdate

logger = logging.getLogger(__name__)


class SchoolService:

    async def list_schools(
        self, db: AsyncSession, school_ids: Optional[Iterable[uuid.UUID]] = None
    ) -> Tuple[List[School], int]:
        """Newest first. `school_ids` narrows the result; None means all schools."""
        query = select(School).order_by(desc(School.created_at), desc(School.id))
        if school_ids is not None:
            school_ids = list(school_ids)
            if not school_ids:
                return [], 0
            query = query.where(School.id.in_(school_ids))
        try:
            schools = list((await db.execute(query)).scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing schools: %s", str(e), exc_info=True)
            raise UnexpectedError(message="Could not retrieve schools. Please try again.")
        return schools, len(schools)

    async def get_school(self, db: AsyncSession, school_id: uuid.UUID) -> School:
        try:
            school = (
                await db.execute(select(School).where(School.id == school_id))
            ).scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error fetching school %s: %s", school_id, str(e))
            raise UnexpectedError(context={"school_id": str(school_id)})
        if school is None:
            raise NotFoundError(resource="school", resource_id=str(school_id))
        return school

    async def create_school(self, db: AsyncSession, data: SchoolCreate) -> School:
        school = School(**data.model_dump())
        try:
            db.add(school)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error creating school: %s", str(e), exc_info=True)
            raise UnexpectedError(message="Could not create the school. Please try again.")
        logger.info("School %s created: %s", school.id, school.name)
        return school

    async def update_school(self, db: AsyncSession, school_id: uuid.UUID, patch: SchoolUpdate) -> School:
        """Apply a partial update; fields the client did not send are left alone."""
        school = await self.get_school(db, school_id)
        changes = patch.changes()
        try:
            for name, value in changes.items():
                setattr(school, name, value)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error updating school %s: %s", school_id, str(e), exc_info=True)
            raise UnexpectedError(message="Could not update the school. Please try again.")
        logger.info("School %s updated: %s", school.id, sorted(changes))
        return school

    async def delete_school(self, db: AsyncSession, school_id: uuid.UUID) -> None:
        """Delete one school and its terms. NotFoundError if it does not exist."""
        await self.get_school(db, school_id)
        await self.bulk_delete_schools(db, [school_id])

    async def bulk_delete_schools(self, db: AsyncSession, ids: Sequence[uuid.UUID]) -> int:
        """
        Delete schools and, with them, their terms.

        Terms are deleted explicitly first so the result does not depend on
        the store enforcing ON DELETE CASCADE.
        """
        if not ids:
            raise ValidationError(message="Valid school ID(s) are required", field="ids")
        try:
            await db.execute(
                delete(Term)
                .where(Term.school_id.in_(list(ids)))
                .execution_options(synchronize_session="fetch")
            )
            result = await db.execute(
                delete(School)
                .where(School.id.in_(list(ids)))
                .execution_options(synchronize_session="fetch")
            )
        except SQLAlchemyError as e:
            logger.error("Database error deleting schools: %s", str(e), exc_info=True)
            raise UnexpectedError(message="Could not delete schools. Please try again.")
        deleted = result.rowcount or 0
        logger.info("Deleted %d school(s)", deleted)
        return deleted


school_service = SchoolService()
