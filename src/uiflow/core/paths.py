"""Dotted-path resolution over arbitrary nested data.

``resolve_path`` is the single lookup used by the condition evaluator, the
template language and the action handlers. It never raises: every failure
resolves to ``None``.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Any

# One dotted segment: an optional name followed by any number of [n] indices
_SEGMENT_RE = re.compile(r"^(?P<name>[^\[\]]*)(?P<indices>(?:\[[^\[\]]*\])*)$")
_INDEX_RE = re.compile(r"\[([^\[\]]*)\]")

PathStep = str | int


def split_path(path: str) -> list[PathStep] | None:
    """Split ``a.b[2].c`` into ``["a", "b", 2, "c"]``.

    Bracket contents are kept as strings when they are not integers so that
    the lookup can reject them against a sequence. Returns ``None`` when a
    segment has unbalanced brackets.
    """
    steps: list[PathStep] = []
    for segment in path.split("."):
        m = _SEGMENT_RE.match(segment)
        if m is None:
            return None
        name = m.group("name")
        if name or not m.group("indices"):
            steps.append(name)
        for raw in _INDEX_RE.findall(m.group("indices")):
            raw = raw.strip()
            try:
                steps.append(int(raw))
            except ValueError:
                steps.append(raw)
    return steps


def _step(current: Any, step: PathStep) -> tuple[bool, Any]:
    """Descend one step. Returns (found, value)."""
    if isinstance(current, Mapping):
        if isinstance(step, int):
            step = str(step)
        if step in current:
            return True, current[step]
        return False, None

    if isinstance(current, Sequence) and not isinstance(current, (str, bytes)):
        if isinstance(step, str):
            try:
                step = int(step)
            except ValueError:
                return False, None
        if 0 <= step < len(current):
            return True, current[step]
        return False, None

    if current is None or isinstance(current, (str, bytes, int, float, bool)):
        return False, None

    # Plain objects (pydantic models, dataclasses): public attributes only
    if isinstance(step, str) and step and not step.startswith("_"):
        try:
            return True, getattr(current, step)
        except AttributeError:
            return False, None
    return False, None


def resolve_path(root: Any, path: str) -> Any:
    """Resolve a dotted/bracketed path like ``user.roles[0].name`` against data.

    Args:
        root: Mapping, sequence or object to navigate.
        path: Dotted path; segments may carry ``[n]`` indices.

    Returns:
        The resolved value, or ``None`` if any step is missing.
    """
    if not isinstance(path, str):
        return None
    steps = split_path(path)
    if steps is None:
        return None

    current: Any = root
    for step in steps:
        found, current = _step(current, step)
        if not found:
            return None
    return current
