"""
URL slug handling for navigate and makeApiCall.

Route templates carry ``:name`` placeholders (``/users/:user.id/edit``).
They are filled from the action's own params first, then from merged
global and content state.
"""

from __future__ import annotations

import logging
import re
from typing import Any
from urllib.parse import quote

from uiflow.core.paths import resolve_path
from uiflow.runtime.context import ActionExecutionContext

logger = logging.getLogger(__name__)

_PARAM_RE = re.compile(r":([a-zA-Z0-9_.]+)")


def extract_route_params(path: str) -> list[str]:
    """Names of the ``:param`` placeholders in ``path``, in order."""
    return _PARAM_RE.findall(path)


def resolve_slugged_path(template: str, params: Any) -> str:
    """Substitute every ``:name`` in ``template`` with a URL-quoted value.

    Names may be dotted paths into ``params``. Placeholders with no value
    are left in place.

    Example:
        resolve_slugged_path("/users/:user.id", {"user": {"id": 7}})  -> "/users/7"
    """

    def substitute(match: re.Match[str]) -> str:
        name = match.group(1)
        value = resolve_path(params, name)
        if value is None:
            logger.debug("Missing route param: %s", name)
            return match.group(0)
        if isinstance(value, bool):
            value = "true" if value else "false"
        return quote(str(value), safe="")

    return _PARAM_RE.sub(substitute, template)


def match_route(pattern: str, pathname: str) -> dict[str, str]:
    """Extract ``{name: value}`` from a concrete path matching ``pattern``.

    Trailing slashes are ignored. A path that does not match gives ``{}``.

    Example:
        match_route("/users/:id/posts/:postId", "/users/7/posts/3")
        # -> {"id": "7", "postId": "3"}
    """
    pattern_parts = pattern.strip("/").split("/")
    path_parts = pathname.strip("/").split("/")
    if len(pattern_parts) != len(path_parts):
        return {}

    params: dict[str, str] = {}
    for expected, actual in zip(pattern_parts, path_parts, strict=True):
        if expected.startswith(":"):
            if not actual:
                return {}
            params[expected[1:]] = actual
        elif expected != actual:
            return {}
    return params


def resolve_url(
    url: str, context: ActionExecutionContext, params: Any = None
) -> str:
    """Resolve slugs in ``url`` from ``params``, then from page state."""
    if ":" not in url:
        return url

    resolved = resolve_slugged_path(url, params or {})
    if extract_route_params(resolved):
        state = context.global_scope.get_all_state()
        if context.content is not None:
            state.update(context.content.get_all_content_state())
        resolved = resolve_slugged_path(resolved, state)

    if resolved != url:
        logger.debug("URL slug resolution: %s -> %s", url, resolved)
    return resolved
