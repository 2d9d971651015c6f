"""InMemoryUnitOfWork — records begin/commit/rollback calls for unit tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ...ports.unit_of_work import UnitOfWork

if TYPE_CHECKING:
    from collections.abc import Collection


class InMemoryUnitOfWork(UnitOfWork):
    """In-memory participant for testing.

    Records calls for assertions. Pass a shared ``journal`` list to several
    instances to assert cross-participant ordering; each call appends
    ``(name, phase)``. ``fail_on`` names the phases ("begin", "commit",
    "rollback") that raise ``error`` instead of succeeding.

    ``rollback()`` follows the participant contract: when no transaction is
    outstanding it is a no-op and is not journaled.
    """

    def __init__(
        self,
        name: str = "uow",
        *,
        journal: list[tuple[str, str]] | None = None,
        fail_on: Collection[str] = (),
        error: Exception | None = None,
    ) -> None:
        super().__init__()
        self.name = name
        self.journal = journal if journal is not None else []
        self.fail_on = frozenset(fail_on)
        self.error = error or RuntimeError(f"{name} failed")
        self.active = False
        self.committed = False
        self.rolled_back = False
        self.begin_count = 0
        self.commit_count = 0
        self.rollback_count = 0

    async def begin(self) -> None:
        self.begin_count += 1
        self.journal.append((self.name, "begin"))
        self._maybe_fail("begin")
        self.active = True

    async def commit(self) -> None:
        self.commit_count += 1
        self.journal.append((self.name, "commit"))
        self._maybe_fail("commit")
        self.active = False
        self.committed = True

    async def rollback(self) -> None:
        if not self.active:
            return
        self.rollback_count += 1
        self.journal.append((self.name, "rollback"))
        self._maybe_fail("rollback")
        self.active = False
        self.rolled_back = True

    def _maybe_fail(self, phase: str) -> None:
        if phase in self.fail_on:
            raise self.error

    # ── Test helpers ─────────────────────────────────────────────

    def reset(self) -> None:
        """Reset call tracking (for test setup)."""
        self.active = False
        self.committed = False
        self.rolled_back = False
        self.begin_count = 0
        self.commit_count = 0
        self.rollback_count = 0
