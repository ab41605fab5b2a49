"""
Transaction boundary shared by every mutating service.

A mutation touches several rows (application, interview, notifications,
profile counters). All of them are written inside one ``unit_of_work`` and
committed once, so the caller sees either every write or none.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import OperationFailed, RecruitmentError

logger = logging.getLogger(__name__)

ConflictMapper = Callable[[IntegrityError], RecruitmentError]


@asynccontextmanager
async def unit_of_work(
    session: AsyncSession,
    on_conflict: Optional[ConflictMapper] = None,
) -> AsyncIterator[AsyncSession]:
    """
    Run a block of writes as a single transaction.

    Args:
        session: Request-scoped session
        on_conflict: Maps a unique-constraint violation onto the matching
            precondition error (e.g. a concurrent duplicate signup)

    Raises:
        RecruitmentError: Domain errors from the block, after rollback
        OperationFailed: Any other store failure, after rollback
    """
    try:
        yield session
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        if on_conflict is not None:
            raise on_conflict(e) from e
        logger.error(f"Integrity error, transaction rolled back: {e.orig}")
        raise OperationFailed() from e
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(f"Database error, transaction rolled back: {e}", exc_info=True)
        raise OperationFailed() from e
    except BaseException:
        await session.rollback()
        raise
