"""
Per-render-pass idempotency registry for generated controller scripts.

A form rendered twice on one page must emit its controller script once.
RenderGuard remembers which keys were consumed; RenderContext scopes a guard
to one render pass so nothing leaks between requests or test cases.

Example:
    context = RenderContext()
    context.emit_once(ScriptKind.DEPENDENCY, "signup", lambda: script)  # script
    context.emit_once(ScriptKind.DEPENDENCY, "signup", lambda: script)  # ""
    context.reset()
"""

import logging
import re
from enum import Enum
from typing import Callable, Optional, Set

logger = logging.getLogger(__name__)

_NON_IDENTIFIER = re.compile(r"[^a-zA-Z0-9_]")


def sanitize_identifier(raw_id: str) -> str:
    """Replace every non-alphanumeric character with an underscore."""
    return _NON_IDENTIFIER.sub("_", raw_id)


class ScriptKind(Enum):
    """Namespaces for guarded script keys."""
    DEPENDENCY = "dependency"
    CHECKBOX_TREE = "checkbox-tree"
    REPEATER = "repeater"


class RenderGuard:
    """Emit a generated artifact at most once per key until reset."""

    def __init__(self):
        self._consumed: Set[str] = set()
        self._in_progress: Set[str] = set()

    def once_for(self, key: str, generator: Callable[[], str]) -> str:
        """
        Return ``generator()`` the first time ``key`` is seen, ``""`` afterwards.

        While the generator runs the key counts as consumed, so a generator
        that renders nested content for the same key cannot emit it twice.
        The key is only kept when the generator returns; after an exception
        the next call generates again.
        """
        if key in self._consumed or key in self._in_progress:
            logger.debug(f"[RenderGuard] Key already consumed: {key}")
            return ""
        self._in_progress.add(key)
        try:
            logger.debug(f"[RenderGuard] Emitting artifact for key: {key}")
            artifact = generator()
        finally:
            self._in_progress.discard(key)
        self._consumed.add(key)
        return artifact

    def is_consumed(self, key: str) -> bool:
        return key in self._consumed

    def reset(self) -> None:
        """Forget every consumed key."""
        logger.debug(f"[RenderGuard] Reset ({len(self._consumed)} keys cleared)")
        self._consumed.clear()

    def __len__(self) -> int:
        return len(self._consumed)


class RenderContext:
    """
    State for one render pass.

    Pass one context to every render call of a page. Create a new context (or
    call reset()) for the next independent pass.
    """

    def __init__(self, guard: Optional[RenderGuard] = None):
        self.guard = guard if guard is not None else RenderGuard()

    @staticmethod
    def key_for(kind: ScriptKind, identifier: str) -> str:
        return f"{kind.value}:{identifier}"

    def emit_once(self, kind: ScriptKind, identifier: str, generator: Callable[[], str]) -> str:
        return self.guard.once_for(self.key_for(kind, identifier), generator)

    def is_rendered(self, kind: ScriptKind, identifier: str) -> bool:
        return self.guard.is_consumed(self.key_for(kind, identifier))

    def reset(self) -> None:
        self.guard.reset()
