"""
SchoolDesk Backend — Term Service (Term Lifecycle)
====================================================

What:  Creates, updates and deletes terms while keeping at most one Active
       term per partition (one school, or the global "no school" group).
Who:   Called by the /api/terms route handlers and by tests directly.
How:   Every operation works on the caller's AsyncSession:
         1. Validate input (nothing written yet)
         2. Lock the partition's term rows (SELECT ... FOR UPDATE)
         3. Flip siblings Inactive / promote the newest sibling
         4. Write the target row and flush
       The session transaction is the atomic unit. get_db_session commits it
       after the handler returns and rolls it back on any exception, so a
       failure between step 3 and step 4 leaves nothing behind.

State Machine (per partition):
    Inactive ──activate / create──▶ Active
    Active ──sibling activated────▶ Inactive
    Active ──deleted──────────────▶ (gone; newest remaining sibling ▶ Active)

"Newest" means created_at descending, then id descending, so ties between
identical timestamps resolve the same way on every run.

There is no cached "current term". get_active_term reads the stored status
every time.
"""

import logging
import uuid
from contextlib import contextmanager
from datetime import date
from typing import Iterable, List, Optional, Sequence, Set, Tuple, Union

from sqlalchemy import asc, delete, desc, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from schooldesk.exceptions import (
    ConflictError,
    NotFoundError,
    SchoolDeskError,
    UnexpectedError,
    ValidationError,
)
from schooldesk.models.term import Partition, Term, TermName, TermStatus
from schooldesk.schemas.term import TermCreate, TermUpdate

logger = logging.getLogger(__name__)


def compute_days_open(start: date, end: date) -> int:
    """Days between start and end (2024-09-01 → 2024-12-20 is 110)."""
    return (end - start).days


def _validate_dates(start: date, end: date) -> None:
    if start >= end:
        raise ValidationError(
            message="Term start date must be before its end date",
            field="start",
            context={"start": start.isoformat(), "end": end.isoformat()},
        )


def _coerce_term_name(value: Union[str, TermName]) -> TermName:
    try:
        return TermName(value)
    except ValueError:
        raise ValidationError(
            message=f"Invalid term '{value}'. Must be one of: First, Second, Third",
            field="term",
        )


@contextmanager
def _store_errors(operation: str, **context):
    """
    Translate driver failures into application errors.

    Our own exceptions pass through untouched. A unique-index violation means
    a concurrent request changed the partition first (ConflictError); anything
    else from the store becomes a generic UnexpectedError.
    """
    try:
        yield
    except SchoolDeskError:
        raise
    except IntegrityError as e:
        logger.warning("Integrity conflict during %s: %s", operation, e.orig)
        raise ConflictError(context={"operation": operation, **context})
    except SQLAlchemyError as e:
        logger.error("Database error during %s: %s", operation, str(e), exc_info=True)
        raise UnexpectedError(context={"operation": operation, **context})


class TermService:
    """
    Term lifecycle operations.

    Stateless: the session and partition arrive with each call, so a single
    module-level instance serves every request.

    Partition arguments:
        create_term always needs the target partition.
        update/delete take Optional[Partition]. None means the caller is a
        super user and the term's own partition applies; a Partition confines
        the lookup, so a term of another school is reported as not found.
    """

    # ── Reads ─────────────────────────────────────────────────────────────

    async def get_term(
        self, db: AsyncSession, term_id: uuid.UUID, partition: Optional[Partition] = None
    ) -> Term:
        with _store_errors("get_term", term_id=str(term_id)):
            query = select(Term).where(Term.id == term_id)
            if partition is not None:
                query = query.where(partition.clause())
            term = (await db.execute(query)).scalar_one_or_none()
        if term is None:
            raise NotFoundError(resource="term", resource_id=str(term_id))
        return term

    async def list_terms(
        self,
        db: AsyncSession,
        school_ids: Optional[Iterable[uuid.UUID]] = None,
        status: Optional[TermStatus] = None,
        session: Optional[str] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Tuple[List[Term], int]:
        """
        List terms, Active first and then newest first.

        Args:
            school_ids: Narrow to these schools. None = no narrowing (super users).
                        An empty collection yields an empty page.
            page/limit: 1-based page number and page size; both or neither.

        Returns:
            (terms on this page, total matching terms)
        """
        conditions = []
        if school_ids is not None:
            school_ids = list(school_ids)
            if not school_ids:
                return [], 0
            conditions.append(Term.school_id.in_(school_ids))
        if status is not None:
            conditions.append(Term.status == status)
        if session:
            conditions.append(Term.session == session)

        query = (
            select(Term)
            .where(*conditions)
            .order_by(asc(Term.status), desc(Term.created_at), desc(Term.id))
        )
        if limit is not None:
            query = query.limit(limit)
            if page is not None:
                query = query.offset((page - 1) * limit)

        with _store_errors("list_terms"):
            terms = list((await db.execute(query)).scalars().all())
            total = (
                await db.execute(select(func.count(Term.id)).where(*conditions))
            ).scalar() or 0
        return terms, total

    async def get_active_term(self, db: AsyncSession, partition: Partition) -> Term:
        """The current term of `partition`, read from stored status."""
        with _store_errors("get_active_term", partition=str(partition)):
            term = (
                await db.execute(
                    select(Term)
                    .where(partition.clause(), Term.status == TermStatus.ACTIVE)
                    .order_by(desc(Term.created_at), desc(Term.id))
                    .limit(1)
                )
            ).scalar_one_or_none()
        if term is None:
            raise NotFoundError(
                resource="term",
                message="No active term for this school",
                context={"partition": str(partition)},
            )
        return term

    # ── Lifecycle ─────────────────────────────────────────────────────────

    async def create_term(self, db: AsyncSession, data: TermCreate, partition: Partition) -> Term:
        """
        Create a term in `partition` and make it the Active one.

        `data.school_id` is ignored; the caller resolves the partition
        (see authorization.partition_for) so scope checks happen first.

        Raises:
            ValidationError: start ≥ end, or an unknown term name
            ConflictError:   another request activated a term concurrently
        """
        _validate_dates(data.start, data.end)
        term_name = _coerce_term_name(data.term)
        days_open = data.days_open if data.days_open is not None else compute_days_open(data.start, data.end)
        if days_open < 1:
            raise ValidationError(message="days_open must be at least 1", field="days_open")

        with _store_errors("create_term", partition=str(partition)):
            await self._lock_partition(db, partition)
            deactivated = await self._deactivate_active(db, partition)

            term = Term(
                school_id=partition.school_id,
                session=data.session,
                term=term_name,
                start=data.start,
                end=data.end,
                next_term=data.next_term,
                days_open=days_open,
                status=TermStatus.ACTIVE,
            )
            db.add(term)
            await db.flush()

        logger.info(
            "Term %s created Active in partition %s (%d previous term(s) deactivated)",
            term.id, partition, deactivated,
        )
        return term

    async def update_term(
        self,
        db: AsyncSession,
        term_id: uuid.UUID,
        patch: TermUpdate,
        partition: Optional[Partition] = None,
    ) -> Term:
        """
        Apply a partial update. Setting status Active deactivates siblings first.

        Raises:
            NotFoundError:   no such term (in `partition`, when given)
            ValidationError: the resulting start is not before end
        """
        changes = patch.changes()

        with _store_errors("update_term", term_id=str(term_id)):
            term = await self._get_for_write(db, term_id, partition)

            if "term" in changes:
                changes["term"] = _coerce_term_name(changes["term"])
            if "start" in changes or "end" in changes:
                _validate_dates(changes.get("start", term.start), changes.get("end", term.end))

            if changes.get("status") == TermStatus.ACTIVE:
                await self._lock_partition(db, term.partition)
                deactivated = await self._deactivate_active(db, term.partition, exclude_id=term.id)
                if deactivated:
                    logger.info(
                        "Activating term %s deactivated %d sibling(s) in partition %s",
                        term.id, deactivated, term.partition,
                    )

            for name, value in changes.items():
                setattr(term, name, value)
            await db.flush()

        return term

    async def delete_term(
        self, db: AsyncSession, term_id: uuid.UUID, partition: Optional[Partition] = None
    ) -> Optional[Term]:
        """
        Delete a term. If it was Active, promote the newest remaining sibling.

        Returns:
            The promoted term, or None when nothing was promoted.
        """
        with _store_errors("delete_term", term_id=str(term_id)):
            term = await self._get_for_write(db, term_id, partition)
            was_active = term.is_active
            term_partition = term.partition

            await self._lock_partition(db, term_partition)
            await db.delete(term)
            await db.flush()

            promoted = None
            if was_active:
                promoted = await self._promote_newest(db, term_partition)

        logger.info("Term %s deleted from partition %s", term_id, term_partition)
        return promoted

    async def bulk_delete_terms(
        self,
        db: AsyncSession,
        ids: Sequence[uuid.UUID],
        partition: Optional[Partition] = None,
    ) -> int:
        """
        Delete several terms at once.

        Which partitions lost their Active term is decided from the rows as
        they were before deletion; each of those partitions then promotes its
        newest remaining term. Without a partition (super users) the ids may
        span several schools.

        Raises:
            ValidationError: empty id list
            NotFoundError:   none of the ids matched (within `partition`)

        Returns:
            Number of deleted terms.
        """
        if not ids:
            raise ValidationError(message="No IDs provided", field="ids")

        with _store_errors("bulk_delete_terms", count=len(ids)):
            query = select(Term).where(Term.id.in_(list(ids)))
            if partition is not None:
                query = query.where(partition.clause())
            rows = list((await db.execute(query.with_for_update())).scalars().all())

            if not rows:
                raise NotFoundError(resource="term", message="No matching terms found")

            lost_active: Set[Partition] = {t.partition for t in rows if t.is_active}
            for affected in sorted({t.partition for t in rows}, key=str):
                await self._lock_partition(db, affected)

            await db.execute(
                delete(Term)
                .where(Term.id.in_([t.id for t in rows]))
                .execution_options(synchronize_session="fetch")
            )

            for affected in sorted(lost_active, key=str):
                await self._promote_newest(db, affected)

        logger.info("Bulk deleted %d term(s); promoted in %d partition(s)", len(rows), len(lost_active))
        return len(rows)

    # ── Internals ─────────────────────────────────────────────────────────

    async def _get_for_write(
        self, db: AsyncSession, term_id: uuid.UUID, partition: Optional[Partition]
    ) -> Term:
        query = select(Term).where(Term.id == term_id)
        if partition is not None:
            query = query.where(partition.clause())
        term = (await db.execute(query.with_for_update())).scalar_one_or_none()
        if term is None:
            raise NotFoundError(resource="term", resource_id=str(term_id))
        return term

    async def _lock_partition(self, db: AsyncSession, partition: Partition) -> None:
        # Row locks on PostgreSQL; SQLite serialises writers on its own
        await db.execute(select(Term.id).where(partition.clause()).with_for_update())

    async def _deactivate_active(
        self, db: AsyncSession, partition: Partition, exclude_id: Optional[uuid.UUID] = None
    ) -> int:
        conditions = [partition.clause(), Term.status == TermStatus.ACTIVE]
        if exclude_id is not None:
            conditions.append(Term.id != exclude_id)
        result = await db.execute(
            update(Term)
            .where(*conditions)
            .values(status=TermStatus.INACTIVE)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0

    async def _promote_newest(self, db: AsyncSession, partition: Partition) -> Optional[Term]:
        newest = (
            await db.execute(
                select(Term)
                .where(partition.clause())
                .order_by(desc(Term.created_at), desc(Term.id))
                .limit(1)
            )
        ).scalar_one_or_none()
        if newest is None:
            logger.info("Partition %s is now empty; no term promoted", partition)
            return None
        newest.status = TermStatus.ACTIVE
        await db.flush()
        logger.info("Promoted term %s to Active in partition %s", newest.id, partition)
        return newest


term_service = TermService()
