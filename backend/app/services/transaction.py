"""
TaskManager Backend — Transaction Coordinator
==============================================

What:  Runs one unit of work (any number of reads, cascade passes and
       inventory delta applications) inside a single database transaction.
Why:   Every delete/restore/update flow must be all-or-nothing. Nothing
       outside the callback ever observes intermediate state.
How:   Opens a fresh session, `session.begin()`, hands the callback a
       UnitOfWork, commits on return and rolls back on ANY exception.
       After a successful commit the registered after-commit hooks fire
       (collaborator notifications); they cannot undo the commit.

Retry Policy:
    Only transient database errors (sqlalchemy OperationalError: deadlock,
    serialization failure, "database is locked") re-run the WHOLE unit of
    work, on a fresh session, with exponential backoff + jitter. Domain
    errors (validation, conflict, not-found) are deterministic and are
    never retried.

      attempt 1 ──OperationalError──▶ rollback ──wait──▶ attempt 2 ...
      attempt N ──OperationalError──▶ rollback ──▶ DatabaseError
      attempt k ──ConflictError────▶ rollback ──▶ ConflictError (as-is)
"""

import inspect
import logging
from typing import Any, Awaitable, Callable, List, Optional, TypeVar

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from tenacity import (
    AsyncRetrying,
    RetryError,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from app.config import settings
from app.database import check_database
from app.exceptions import DatabaseError, TaskManagerError

logger = logging.getLogger(__name__)

T = TypeVar("T")

AfterCommitHook = Callable[[], Any]


def require_transaction(session: AsyncSession) -> None:
    """
    Guard used by every core write: refuse to run outside an active transaction.

    Raises:
        RuntimeError: the session has no transaction in progress. This is a
        programming error, not a user-facing condition.
    """
    if not session.in_transaction():
        raise RuntimeError(
            "Core write attempted outside an active transaction. "
            "Run it through TransactionCoordinator.run()."
        )


class UnitOfWork:
    """
    The handle a unit-of-work callback receives.

    Attributes:
        session: the transactional session; every core operation takes it
        hooks:   after-commit callables registered during this attempt
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.hooks: List[AfterCommitHook] = []

    def after_commit(self, hook: AfterCommitHook) -> None:
        """Register a callable (sync or async) to run once the transaction commits."""
        self.hooks.append(hook)


class TransactionCoordinator:
    """
    Commit/abort boundary for the core.

    Stateless apart from the session factory, so one instance is shared by
    the whole application (see `get_coordinator`).
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        max_attempts: Optional[int] = None,
        min_wait: Optional[float] = None,
        max_wait: Optional[float] = None,
    ):
        self.session_factory = session_factory
        self.max_attempts = max_attempts or settings.txn_max_attempts
        self.min_wait = settings.txn_retry_min_wait if min_wait is None else min_wait
        self.max_wait = settings.txn_retry_max_wait if max_wait is None else max_wait

    async def run(self, work: Callable[[UnitOfWork], Awaitable[T]]) -> T:
        """
        Execute `work` atomically and return its result.

        Raises:
            TaskManagerError subclasses raised by `work`, unchanged.
            DatabaseError: unexpected SQLAlchemy failure, or transient
                failures that outlived the retry budget.
        """
        retrying = self._retrying()
        try:
            async for attempt in retrying:
                with attempt:
                    result, uow = await self._run_once(work)
        except RetryError as e:
            last = e.last_attempt.exception() if e.last_attempt else None
            logger.error(
                "Transaction failed after %d attempts: %s",
                self.max_attempts,
                str(last),
            )
            raise DatabaseError(
                context={"attempts": self.max_attempts, "error_type": type(last).__name__},
            )

        await self._fire_hooks(uow)
        return result

    def _retrying(self) -> AsyncRetrying:
        # Exponential backoff from min_wait, capped at max_wait, plus up to
        # min_wait of jitter.
        return AsyncRetrying(
            retry=retry_if_exception_type(OperationalError),
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.min_wait, max=self.max_wait)
            + wait_random(0, self.min_wait),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=False,
        )

    async def _run_once(self, work: Callable[[UnitOfWork], Awaitable[T]]):
        async with self.session_factory() as session:
            try:
                async with session.begin():
                    uow = UnitOfWork(session)
                    result = await work(uow)
            except (TaskManagerError, OperationalError):
                # session.begin() already rolled back
                raise
            except SQLAlchemyError as e:
                logger.error("Transaction aborted by database error: %s", str(e), exc_info=True)
                raise DatabaseError(context={"error_type": type(e).__name__})
        return result, uow

    async def ping(self) -> bool:
        """Connectivity check against the database this coordinator writes to."""
        async with self.session_factory() as session:
            return await check_database(session.bind)

    async def _fire_hooks(self, uow: UnitOfWork) -> None:
        # Fire-and-forget: the transaction is already committed
        for hook in uow.hooks:
            try:
                outcome = hook()
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception:
                logger.error("After-commit hook %r failed", hook, exc_info=True)


# ── Shared Instance ───────────────────────────────────────────────────────
_coordinator: Optional[TransactionCoordinator] = None


def get_coordinator() -> TransactionCoordinator:
    """FastAPI dependency returning the application-wide coordinator."""
    global _coordinator
    if _coordinator is None:
        from app.database import async_session_factory

        _coordinator = TransactionCoordinator(async_session_factory)
    return _coordinator
