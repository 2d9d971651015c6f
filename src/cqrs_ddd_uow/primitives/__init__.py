"""Primitives: exceptions."""

from __future__ import annotations

from .exceptions import (
    CoordinatorStateError,
    ParticipantRollbackError,
    TransactionAbortedError,
    TransactionScopeError,
    UnitOfWorkError,
)

__all__ = [
    "CoordinatorStateError",
    "ParticipantRollbackError",
    "TransactionAbortedError",
    "TransactionScopeError",
    "UnitOfWorkError",
]
