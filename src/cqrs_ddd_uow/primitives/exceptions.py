"""Exceptions raised by the unit-of-work coordinator and transaction scopes."""

from __future__ import annotations


class UnitOfWorkError(Exception):
    """Root exception for the cqrs-ddd-uow package."""


class CoordinatorStateError(UnitOfWorkError):
    """Raised when a coordinator operation is invoked in the wrong state.

    Usage: ``commit()`` before ``begin()``, or ``run()`` after the
    coordinator has already been committed or rolled back.
    """


class ParticipantRollbackError(UnitOfWorkError):
    """One or more participants failed to roll back.

    The rollback loop always visits every participant; this error is raised
    once the loop is done and carries every failure it collected.
    """

    def __init__(
        self,
        attempted: int,
        errors: list[tuple[str, BaseException]],
    ) -> None:
        self.attempted = attempted
        self.errors = errors

        first = f"{errors[0][0]}: {errors[0][1]!r}" if errors else "unknown"
        super().__init__(
            f"Rollback incomplete: {self.failed}/{attempted} participants failed. "
            f"First error: {first}"
        )

    @property
    def failed(self) -> int:
        return len(self.errors)


class TransactionScopeError(UnitOfWorkError):
    """Raised when a transaction scope is misused."""


class TransactionAbortedError(TransactionScopeError):
    """The ambient transaction was doomed by a scope that never completed."""
