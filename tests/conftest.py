from __future__ import annotations

import pytest

from cqrs_ddd_uow.instrumentation import HookRegistry, set_hook_registry


@pytest.fixture()
def journal() -> list[tuple[str, str]]:
    return []


@pytest.fixture(autouse=True)
def _isolated_hook_registry() -> HookRegistry:
    registry = HookRegistry()
    set_hook_registry(registry)
    return registry
