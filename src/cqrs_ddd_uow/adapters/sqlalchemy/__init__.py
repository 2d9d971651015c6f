"""SQLAlchemy participants. Requires the ``sqlalchemy`` extra."""

from __future__ import annotations

from .unit_of_work import SessionUnitOfWorkError, SQLAlchemySessionUnitOfWork

__all__ = ["SQLAlchemySessionUnitOfWork", "SessionUnitOfWorkError"]
