from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from cqrs_ddd_uow import InMemoryUnitOfWork, UnitOfWorkCoordinator
from cqrs_ddd_uow.adapters.sqlalchemy import (
    SessionUnitOfWorkError,
    SQLAlchemySessionUnitOfWork,
)


def _session(*, in_transaction: bool = False) -> AsyncMock:
    session = AsyncMock(spec=AsyncSession)
    session.in_transaction = MagicMock(return_value=in_transaction)
    session.begin = AsyncMock()
    return session


def test_requires_exactly_one_session_source():
    with pytest.raises(SessionUnitOfWorkError, match="exactly one"):
        SQLAlchemySessionUnitOfWork()
    with pytest.raises(SessionUnitOfWorkError, match="exactly one"):
        SQLAlchemySessionUnitOfWork(session=_session(), session_factory=_session)


def test_session_before_begin_raises_for_factory():
    uow = SQLAlchemySessionUnitOfWork(session_factory=_session)

    with pytest.raises(SessionUnitOfWorkError, match="not yet created"):
        _ = uow.session


@pytest.mark.asyncio()
async def test_begin_opens_transaction_once():
    session = _session()
    uow = SQLAlchemySessionUnitOfWork(session=session)

    await uow.begin()

    session.begin.assert_awaited_once()


@pytest.mark.asyncio()
async def test_begin_skips_when_already_in_transaction():
    session = _session(in_transaction=True)
    uow = SQLAlchemySessionUnitOfWork(session=session)

    await uow.begin()

    session.begin.assert_not_awaited()


@pytest.mark.asyncio()
async def test_begin_failure_is_wrapped():
    session = _session()
    session.begin.side_effect = OSError("connection refused")
    uow = SQLAlchemySessionUnitOfWork(session=session)

    with pytest.raises(SessionUnitOfWorkError, match="Failed to begin"):
        await uow.begin()


@pytest.mark.asyncio()
async def test_commit_failure_is_wrapped():
    session = _session()
    session.commit.side_effect = Exception("constraint violated")
    uow = SQLAlchemySessionUnitOfWork(session=session)
    await uow.begin()

    with pytest.raises(SessionUnitOfWorkError, match="Failed to commit"):
        await uow.commit()


@pytest.mark.asyncio()
async def test_rollback_is_noop_outside_transaction():
    session = _session(in_transaction=False)
    uow = SQLAlchemySessionUnitOfWork(session=session)

    await uow.rollback()

    session.rollback.assert_not_awaited()


@pytest.mark.asyncio()
async def test_caller_managed_session_is_not_closed():
    session = _session()
    uow = SQLAlchemySessionUnitOfWork(session=session)

    await uow.begin()
    await uow.commit()

    session.commit.assert_awaited_once()
    session.close.assert_not_awaited()


@pytest.mark.asyncio()
async def test_self_managed_session_closed_after_commit():
    session = _session()
    factory = MagicMock(return_value=session)
    uow = SQLAlchemySessionUnitOfWork(session_factory=factory)

    await uow.begin()
    await uow.commit()
    await uow.rollback()

    factory.assert_called_once_with()
    session.commit.assert_awaited_once()
    session.close.assert_awaited_once()
    session.rollback.assert_not_awaited()


@pytest.mark.asyncio()
async def test_coordinated_commit_failure_rolls_back_session():
    session = _session()
    events = InMemoryUnitOfWork("events", fail_on=("commit",))
    repo = SQLAlchemySessionUnitOfWork(session=session)

    with pytest.raises(RuntimeError, match="events failed"):
        async with UnitOfWorkCoordinator([repo, events]) as uow:
            # keep the transaction open so rollback reaches the session
            session.in_transaction.return_value = True
            await uow.run(lambda: None)

    session.commit.assert_awaited_once()
    session.rollback.assert_awaited_once()
    assert events.rolled_back


@pytest.mark.asyncio()
async def test_self_managed_session_closed_when_begin_fails():
    session = _session()
    session.begin.side_effect = OSError("connection refused")
    uow = SQLAlchemySessionUnitOfWork(session_factory=MagicMock(return_value=session))
    first = InMemoryUnitOfWork("first")

    with pytest.raises(SessionUnitOfWorkError, match="Failed to begin"):
        await UnitOfWorkCoordinator.start([first, uow])

    session.close.assert_awaited_once()
    assert first.rolled_back
    with pytest.raises(SessionUnitOfWorkError, match="not yet created"):
        _ = uow.session


@pytest.mark.asyncio()
async def test_self_managed_session_closed_when_rollback_fails():
    session = _session()
    session.rollback.side_effect = OSError("connection reset")
    uow = SQLAlchemySessionUnitOfWork(session_factory=MagicMock(return_value=session))
    await uow.begin()
    session.in_transaction.return_value = True

    with pytest.raises(SessionUnitOfWorkError, match="Failed to rollback"):
        await uow.rollback()

    session.close.assert_awaited_once()
