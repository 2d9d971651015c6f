"""UnitOfWorkCoordinator — all-or-nothing execution across several units of work."""

from __future__ import annotations

import contextlib
import inspect
import logging
from typing import TYPE_CHECKING, Any, TypeVar

from .diagnostics import log_caller
from .instrumentation import get_hook_registry
from .ports.unit_of_work import UnitOfWork
from .primitives.exceptions import CoordinatorStateError, ParticipantRollbackError
from .settings import CoordinatorSettings
from .transaction_scope import TransactionScope

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable

    from .instrumentation import HookRegistry

T = TypeVar("T")


class UnitOfWorkCoordinator:
    """
    Runs application logic so that every registered unit of work either
    commits or rolls back.

    Standard usage::

        async with UnitOfWorkCoordinator([repository, event_publisher]) as uow:
            order = await uow.run_async(lambda: place_order(command))

    Entering the context begins every participant; leaving it without a
    successful ``run``/``run_async``/``commit`` rolls every participant back.

    **Ordering guarantees:**

    1. Participants are the candidates that extend :class:`UnitOfWork`, in
       input order. Other candidates are skipped.
    2. ``begin``, ``commit`` and ``rollback`` visit participants sequentially
       in registration order, awaiting each call.
    3. Commit stops at the first failing participant. Rollback always visits
       every participant and aggregates failures.
    4. A failing action or commit rolls back *all* participants (including
       those already committed), then re-raises the original exception.

    Parameters
    ----------
    candidates:
        Objects that may or may not be participants.
    logger:
        Diagnostic sink. Defaults to the logger named by
        ``settings.logger_name``.
    settings:
        Optional :class:`~cqrs_ddd_uow.settings.CoordinatorSettings`.
    hooks:
        Optional :class:`~cqrs_ddd_uow.instrumentation.HookRegistry`;
        defaults to the context-local registry.
    """

    def __init__(
        self,
        candidates: Iterable[object],
        logger: logging.Logger | None = None,
        *,
        settings: CoordinatorSettings | None = None,
        hooks: HookRegistry | None = None,
    ) -> None:
        self._settings = settings or CoordinatorSettings()
        self._logger = logger or logging.getLogger(self._settings.logger_name)
        self._hooks = hooks or get_hook_registry()
        self._participants: list[UnitOfWork] = []
        self._begun = False
        self._finalized = False
        self.rollback_error: ParticipantRollbackError | None = None

        with log_caller(self._logger, "__init__"):
            for candidate in candidates:
                if not isinstance(candidate, UnitOfWork):
                    self._logger.debug(
                        "Skipping %s: not a unit of work", type(candidate).__name__
                    )
                    continue
                self._logger.info(
                    "Adding unit of work %s", type(candidate).__name__
                )
                self._participants.append(candidate)

    @classmethod
    async def start(
        cls,
        candidates: Iterable[object],
        logger: logging.Logger | None = None,
        *,
        settings: CoordinatorSettings | None = None,
        hooks: HookRegistry | None = None,
    ) -> UnitOfWorkCoordinator:
        """Construct a coordinator and begin all of its participants."""
        coordinator = cls(candidates, logger, settings=settings, hooks=hooks)
        await coordinator.begin()
        return coordinator

    # ── State ────────────────────────────────────────────────────────

    @property
    def participants(self) -> tuple[UnitOfWork, ...]:
        return tuple(self._participants)

    @property
    def settings(self) -> CoordinatorSettings:
        return self._settings

    @property
    def begun(self) -> bool:
        return self._begun

    @property
    def finalized(self) -> bool:
        """True once commit-all succeeded or rollback-all has run."""
        return self._finalized

    # ── Public API ───────────────────────────────────────────────────

    async def begin(self) -> None:
        """Begin every participant in registration order.

        If a participant fails to begin, the participants that already began
        are rolled back, the coordinator is finalized, and the begin error
        propagates unchanged. Calling ``begin()`` again is a no-op.
        """
        if self._begun:
            return
        if self._finalized:
            raise CoordinatorStateError("Cannot begin a finalized coordinator")

        with log_caller(self._logger, "begin"):
            for index, participant in enumerate(self._participants):
                name = type(participant).__name__
                self._logger.info("Beginning unit of work %s", name)
                try:
                    await self._invoke("uow.begin", index, participant.begin)
                except BaseException as exc:
                    self._logger.error(
                        "Unit of work %s failed to begin", name, exc_info=True
                    )
                    await self._rollback_after_failure(
                        exc, self._participants[:index]
                    )
                    raise
                self._logger.info("Began unit of work %s", name)
            self._begun = True

    async def run(self, action: Callable[[], Any]) -> None:
        """Run a synchronous *action*, then commit; roll back on any failure."""

        async def _call_action() -> None:
            self._logger.info("Running action")
            result = action()
            if inspect.isawaitable(result):
                if inspect.iscoroutine(result):
                    result.close()
                raise TypeError(
                    "run() takes a synchronous action; use run_async() for "
                    f"{getattr(action, '__qualname__', action)!r}"
                )
            self._logger.info("Ran action")

        with log_caller(self._logger, "run"):
            await self._execute(_call_action)

    async def run_async(self, func: Callable[[], Awaitable[T]]) -> T:
        """Await *func*, then commit and return its value; roll back on failure.

        The value is returned only after every participant committed (and the
        ambient transaction scope completed). A function returning ``None``
        gives the void flavor.
        """

        async def _call_function() -> T:
            self._logger.info("Running function")
            value = await func()
            self._logger.info("Ran function")
            return value

        with log_caller(self._logger, "run_async"):
            return await self._execute(_call_function)

    async def commit(self) -> None:
        """Commit every participant, then fire their post-commit hooks."""
        with log_caller(self._logger, "commit"):
            await self._commit_all()
            self._finalized = True
            await self._trigger_commit_hooks()

    async def rollback(self) -> None:
        """Roll back every participant.

        Raises:
            ParticipantRollbackError: one or more participants failed; the
                loop still visited every participant.
        """
        with log_caller(self._logger, "rollback"):
            errors = await self._rollback_all(self._participants)
            if errors:
                raise ParticipantRollbackError(len(self._participants), errors)

    async def dispose(self) -> None:
        """Release the coordinator: roll back unless already finalized.

        Never raises; rollback failures are logged and kept in
        :attr:`rollback_error`.
        """
        with log_caller(self._logger, "dispose"):
            if self._finalized:
                return
            if not self._settings.rollback_on_dispose:
                self._logger.warning(
                    "Disposing unfinalized coordinator without rollback "
                    "(rollback_on_dispose is disabled)"
                )
                return
            self._logger.info("Rolling back on dispose")
            errors = await self._rollback_all(self._participants)
            self._record_rollback_errors(len(self._participants), errors)

    async def __aenter__(self) -> UnitOfWorkCoordinator:
        await self.begin()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        await self.dispose()

    # ── Orchestration ────────────────────────────────────────────────

    async def _execute(self, invoke: Callable[[], Awaitable[T]]) -> T:
        self._ensure_runnable()

        async def _guarded() -> T:
            try:
                async with self._open_scope() as scope:
                    value = await invoke()
                    await self._commit_all()
                    if scope is not None:
                        scope.complete()
            except BaseException as exc:
                self._logger.error("Exception encountered", exc_info=True)
                await self._rollback_after_failure(exc, self._participants)
                raise
            self._logger.info("Committed")
            self._finalized = True
            await self._trigger_commit_hooks()
            return value

        attributes = {"participant_count": len(self._participants)}
        return await self._hooks.execute_all("uow.run", attributes, _guarded)

    def _ensure_runnable(self) -> None:
        if self._finalized:
            raise CoordinatorStateError(
                "Coordinator is already finalized; create a new one per operation"
            )
        if not self._begun:
            raise CoordinatorStateError(
                "Coordinator has not begun; use 'async with' or start()"
            )

    def _open_scope(self) -> contextlib.AbstractAsyncContextManager[Any]:
        if self._settings.use_transaction_scope:
            return TransactionScope()
        return contextlib.nullcontext()

    async def _commit_all(self) -> None:
        self._ensure_runnable()
        for index, participant in enumerate(self._participants):
            name = type(participant).__name__
            self._logger.info("Committing %s", name)
            await self._invoke("uow.commit", index, participant.commit)
            self._logger.info("Committed %s", name)

    async def _rollback_all(
        self, participants: list[UnitOfWork]
    ) -> list[tuple[str, BaseException]]:
        errors: list[tuple[str, BaseException]] = []
        # Cancellation and other BaseExceptions stop the loop and propagate,
        # replacing any error being handled.
        try:
            for index, participant in enumerate(participants):
                name = type(participant).__name__
                self._logger.info("Rolling back %s", name)
                participant.discard_commit_hooks()
                try:
                    await self._invoke("uow.rollback", index, participant.rollback)
                except Exception as exc:
                    self._logger.error(
                        "Unit of work %s failed to roll back", name, exc_info=True
                    )
                    errors.append((name, exc))
                    continue
                self._logger.info("Rolled back %s", name)
        finally:
            self._finalized = True
        return errors

    async def _rollback_after_failure(
        self, exc: BaseException, participants: list[UnitOfWork]
    ) -> None:
        """Roll back on a failing path; *exc* stays the error the caller sees."""
        self._logger.info("Rolling back after %s", type(exc).__name__)
        errors = await self._rollback_all(participants)
        self._record_rollback_errors(len(participants), errors)
        self._logger.info("Rolled back")

    def _record_rollback_errors(
        self, attempted: int, errors: list[tuple[str, BaseException]]
    ) -> None:
        if not errors:
            return
        self.rollback_error = ParticipantRollbackError(attempted, errors)
        self._logger.error("%s", self.rollback_error)

    async def _trigger_commit_hooks(self) -> None:
        if not self._settings.trigger_commit_hooks:
            return
        for participant in self._participants:
            await participant.trigger_commit_hooks()

    async def _invoke(
        self, operation: str, index: int, call: Callable[[], Awaitable[None]]
    ) -> None:
        participant = self._participants[index]
        attributes = {
            "participant_type": type(participant).__name__,
            "participant_index": index,
        }
        await self._hooks.execute_all(operation, attributes, call)
