"""Shared pytest fixtures for uiflow tests."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any

import pytest

from uiflow.logging import ROOT_LOGGER
from uiflow.runtime.context import ActionExecutionContext, GlobalScope, MemoryStorage
from uiflow.runtime.executor import ActionExecutor
from uiflow.runtime.registry import default_registry
from uiflow.runtime.state import ContentScope, InMemoryStateStore
from uiflow.specs.results import ApiRequest


class RecordingHost:
    """Spy implementations of every host capability.

    Each call is appended to ``calls`` as ``(capability, payload)``.
    ``api_response`` is what ``make_api_call`` returns; set ``api_error``
    to make it raise instead.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, Any]] = []
        self.api_response: Any = None
        self.api_error: Exception | None = None
        self.login_response: Any = {"success": True, "token": "t-1"}

    def navigate(self, path: str) -> None:
        self.calls.append(("navigate", path))

    async def make_api_call(self, request: ApiRequest) -> Any:
        self.calls.append(("makeApiCall", request))
        if self.api_error is not None:
            raise self.api_error
        return self.api_response

    def show_toast(self, message: str, toast_type: str) -> None:
        self.calls.append(("showToast", (message, toast_type)))

    async def login(self, credentials: dict[str, Any]) -> Any:
        self.calls.append(("login", credentials))
        return self.login_response

    def logout(self) -> None:
        self.calls.append(("logout", None))

    def error(self, message: str, details: Any) -> None:
        self.calls.append(("error", (message, details)))

    def named(self, capability: str) -> list[Any]:
        """Payloads of every call to ``capability``, in order."""
        return [payload for name, payload in self.calls if name == capability]


@pytest.fixture
def host() -> RecordingHost:
    """Recording host capabilities."""
    return RecordingHost()


@pytest.fixture
def global_scope(host: RecordingHost) -> GlobalScope:
    """Global scope wired to the recording host, with in-memory storage."""
    return GlobalScope(
        state=InMemoryStateStore(),
        navigate=host.navigate,
        make_api_call=host.make_api_call,
        storage=MemoryStorage(),
        show_toast=host.show_toast,
        login=host.login,
        logout=host.logout,
        error=host.error,
    )


@pytest.fixture
def bare_global_scope() -> GlobalScope:
    """Global scope with state only and no optional capabilities."""
    return GlobalScope()


@pytest.fixture
def content() -> ContentScope:
    """Empty content scope."""
    return ContentScope()


@pytest.fixture
def ctx(global_scope: GlobalScope, content: ContentScope) -> ActionExecutionContext:
    """Execution context with global and content scopes."""
    return ActionExecutionContext(global_scope=global_scope, content=content)


@pytest.fixture
def bare_ctx(bare_global_scope: GlobalScope, content: ContentScope) -> ActionExecutionContext:
    """Execution context whose global scope has no optional capabilities."""
    return ActionExecutionContext(global_scope=bare_global_scope, content=content)


@pytest.fixture
def executor() -> ActionExecutor:
    """Executor over a fresh built-in registry."""
    return ActionExecutor(default_registry())


@pytest.fixture(autouse=True)
def isolated_logging() -> Iterator[None]:
    """Drop handlers that ``setup_logging`` attached during a test."""
    yield
    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
