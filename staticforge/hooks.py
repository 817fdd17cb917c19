"""
Lifecycle hooks for plugins.

Two kinds of hooks:
- Event hooks (beforeBuild, afterBuild): each handler is awaited in
  registration order; return values are ignored.
- Fold hooks (redirects): each handler receives the value returned by the
  previous one and returns the next value.

Handlers may be plain functions or coroutines. Any handler exception is
raised as HookError with the original exception chained.
"""

import inspect
from collections.abc import Callable, Iterable
from typing import Any

from staticforge.errors import HookError
from staticforge.utils import get_logger

logger = get_logger("hooks")

HookFn = Callable[..., Any]

BEFORE_BUILD = "beforeBuild"
AFTER_BUILD = "afterBuild"
REDIRECTS = "redirects"
CREATE_PAGES = "createPages"


def _handler_name(fn: HookFn) -> str:
    module = getattr(fn, "__module__", None) or "?"
    name = getattr(fn, "__qualname__", None) or repr(fn)
    return f"{module}.{name}"


async def _invoke(hook: str, fn: HookFn, *args: Any) -> Any:
    try:
        result = fn(*args)
        if inspect.isawaitable(result):
            result = await result
        return result
    except HookError:
        raise
    except Exception as e:
        raise HookError(hook, _handler_name(fn), str(e)) from e


async def fold(handlers: Iterable[HookFn], initial: Any, *args: Any, hook: str = "fold") -> Any:
    """
    Reduce a value through handlers in order.

    Each handler is called as handler(value, *args) and its return value
    becomes the next value.

    Args:
        handlers: Handlers in application order
        initial: Seed value
        *args: Extra arguments passed to every handler
        hook: Hook name used in error messages

    Returns:
        Value returned by the last handler, or initial when there are none
    """
    value = initial
    for fn in handlers:
        value = await _invoke(hook, fn, value, *args)
    return value


class HookRegistry:
    """Named hooks with ordered handlers."""

    def __init__(self):
        self._handlers: dict[str, list[HookFn]] = {}

    def tap(self, name: str, fn: HookFn) -> HookFn:
        """Register a handler for a hook. Returns the handler."""
        self._handlers.setdefault(name, []).append(fn)
        return fn

    def handlers(self, name: str) -> list[HookFn]:
        return list(self._handlers.get(name, []))

    async def run(self, name: str, *args: Any) -> None:
        """Await every handler of an event hook in registration order."""
        handlers = self.handlers(name)
        logger.debug(
            f"Running hook {name} ({len(handlers)} handlers)",
            extra={"event": "hook_started", "metadata": {"hook": name, "handlers": len(handlers)}},
        )
        for fn in handlers:
            await _invoke(name, fn, *args)

    async def fold(self, name: str, initial: Any, *args: Any) -> Any:
        """Fold a value through every handler of a hook."""
        return await fold(self.handlers(name), initial, *args, hook=name)

    def __repr__(self) -> str:
        counts = {name: len(fns) for name, fns in self._handlers.items()}
        return f"HookRegistry({counts})"
