"""Instrumentation hooks around coordinator phases (tracing, metrics, …).

The coordinator wraps every run and every participant call in
:meth:`HookRegistry.execute_all` with one of these operation names:

* ``uow.run`` — a whole ``run()`` / ``run_async()`` call
* ``uow.begin`` / ``uow.commit`` / ``uow.rollback`` — one participant call

Attributes carry ``participant_type`` (the participant class name) and
``participant_index`` for participant operations.
"""

from __future__ import annotations

import fnmatch
import logging
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger("cqrs_ddd.instrumentation")


@runtime_checkable
class InstrumentationHook(Protocol):
    """Wraps one coordinator operation; must await ``next_handler``."""

    async def __call__(
        self,
        operation: str,
        attributes: dict[str, Any],
        next_handler: Callable[[], Awaitable[Any]],
    ) -> Any: ...


class HookRegistration:
    """A registered hook with filtering and priority."""

    def __init__(
        self,
        hook: InstrumentationHook,
        *,
        priority: int = 0,
        operations: list[str] | None = None,
        participant_types: list[str] | None = None,
        enabled: bool = True,
    ) -> None:
        self.hook = hook
        self.priority = priority
        self.operations = operations or []
        self.participant_types = participant_types or []
        self.enabled = enabled

    def matches(self, operation: str, attributes: dict[str, Any]) -> bool:
        if not self.enabled:
            return False
        if self.operations and not any(
            fnmatch.fnmatch(operation, pattern) for pattern in self.operations
        ):
            return False
        if not self.participant_types:
            return True
        participant_type = attributes.get("participant_type")
        # run-level operations have no participant and are never filtered out
        return participant_type is None or participant_type in self.participant_types


class HookRegistry:
    """Ordered collection of hooks; lower priority values wrap outermost."""

    def __init__(self) -> None:
        self._registrations: list[HookRegistration] = []

    @property
    def registrations(self) -> tuple[HookRegistration, ...]:
        return tuple(self._registrations)

    def register(
        self,
        hook: InstrumentationHook,
        *,
        priority: int = 0,
        operations: list[str] | None = None,
        participant_types: list[str] | None = None,
        enabled: bool = True,
    ) -> HookRegistration:
        registration = HookRegistration(
            hook,
            priority=priority,
            operations=operations,
            participant_types=participant_types,
            enabled=enabled,
        )
        self._registrations.append(registration)
        self._registrations.sort(key=lambda r: r.priority)
        return registration

    async def execute_all(
        self,
        operation: str,
        attributes: dict[str, Any],
        next_handler: Callable[[], Awaitable[Any]],
    ) -> Any:
        """Run *next_handler* wrapped by every matching hook."""
        matching = [r for r in self._registrations if r.matches(operation, attributes)]
        if not matching:
            return await next_handler()

        async def pipeline(index: int = 0) -> Any:
            if index >= len(matching):
                return await next_handler()
            return await matching[index].hook(
                operation,
                attributes,
                lambda: pipeline(index + 1),
            )

        logger.debug("Executing %d hook(s) for %s", len(matching), operation)
        return await pipeline()

    def clear(self) -> None:
        self._registrations.clear()


_hook_registry_var: ContextVar[HookRegistry | None] = ContextVar(
    "uow_hook_registry", default=None
)


def get_hook_registry() -> HookRegistry:
    """Get the hook registry for the current context.

    A fresh registry is created on first access within each context, so
    tests and concurrent tasks never share hooks by accident.
    """
    registry = _hook_registry_var.get()
    if registry is None:
        registry = HookRegistry()
        _hook_registry_var.set(registry)
    return registry


def set_hook_registry(registry: HookRegistry) -> None:
    """Set a custom hook registry in the current context."""
    _hook_registry_var.set(registry)
