"""
SQLAlchemy participant for the unit-of-work coordinator.
"""

from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING

from ...ports.unit_of_work import UnitOfWork
from ...primitives.exceptions import UnitOfWorkError

if TYPE_CHECKING:
    from collections.abc import Callable

    from sqlalchemy.ext.asyncio import AsyncSession

    AsyncSessionFactory = Callable[[], AsyncSession]


class SessionUnitOfWorkError(UnitOfWorkError):
    """Raised when the session cannot be opened, committed or rolled back."""


class SQLAlchemySessionUnitOfWork(UnitOfWork):
    """
    Participant wrapping a SQLAlchemy ``AsyncSession``.

    Supports two usage patterns:

    1. **Caller-Managed Sessions**:
       ```python
       repo_uow = SQLAlchemySessionUnitOfWork(session=session)
       ```
       The session lifecycle belongs to the dependency injection container.

    2. **Self-Managed Sessions**:
       ```python
       factory = async_sessionmaker(engine)
       repo_uow = SQLAlchemySessionUnitOfWork(session_factory=factory)
       ```
       ``begin()`` creates the session; it is closed once the transaction
       is committed or rolled back.

    **Important:** Exactly one of `session` or `session_factory` must be provided.
    """

    def __init__(
        self,
        session: AsyncSession | None = None,
        session_factory: AsyncSessionFactory | None = None,
    ) -> None:
        if (session is None) == (session_factory is None):
            raise SessionUnitOfWorkError(
                "Provide exactly one of 'session' (caller-managed) or "
                "'session_factory' (self-managed)."
            )
        super().__init__()
        self._session: AsyncSession | None = session
        self._session_factory = session_factory
        self._owns_session = session_factory is not None

    @property
    def session(self) -> AsyncSession:
        """Get the active session. Raises if begin() has not created it yet."""
        if self._session is None:
            raise SessionUnitOfWorkError(
                "Session not yet created. Ensure begin() was called."
            )
        return self._session

    async def begin(self) -> None:
        try:
            if self._owns_session and self._session_factory is not None:
                self._session = self._session_factory()
            if not self.session.in_transaction():
                await self.session.begin()
        except Exception as e:  # noqa: BLE001
            # a participant whose begin failed is never rolled back
            if self._owns_session and self._session is not None:
                session, self._session = self._session, None
                with contextlib.suppress(Exception):
                    await session.close()
            if isinstance(e, SessionUnitOfWorkError):
                raise
            raise SessionUnitOfWorkError(f"Failed to begin transaction: {e}") from e

    async def commit(self) -> None:
        try:
            await self.session.commit()
        except Exception as e:  # noqa: BLE001
            # The coordinator rolls back every participant after this
            raise SessionUnitOfWorkError(f"Failed to commit transaction: {e}") from e
        await self._release()

    async def rollback(self) -> None:
        """Rollback if a transaction is in progress; otherwise a no-op."""
        if self._session is None:
            return
        try:
            if self._session.in_transaction():
                await self._session.rollback()
        except Exception as e:  # noqa: BLE001
            raise SessionUnitOfWorkError(f"Failed to rollback transaction: {e}") from e
        finally:
            await self._release()

    async def _release(self) -> None:
        if not self._owns_session or self._session is None:
            return
        session, self._session = self._session, None
        try:
            await session.close()
        except Exception as e:  # noqa: BLE001
            raise SessionUnitOfWorkError(f"Failed to close session: {e}") from e
