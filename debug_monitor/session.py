"""Enabled-session bookkeeping for the debug monitor.

A session spans one enable and its matching disable. Every asynchronous
callback captures the generation it was started under and checks
SessionState.is_current() before touching state; ending a session bumps
the generation synchronously, so callbacks that complete after teardown
has begun are dropped on arrival.
"""

from __future__ import annotations

import contextlib
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)

Disposer = Callable[[], Any] | Callable[[], Awaitable[Any]]


class DisposerSet:
    """Release callbacks run once, last registered first.

    Wraps an AsyncExitStack so synchronous and asynchronous disposers can be
    mixed. aclose() is idempotent and a failing disposer does not prevent
    the remaining ones from running.
    """

    def __init__(self) -> None:
        self._stack = contextlib.AsyncExitStack()
        self._count = 0
        self._closed = False

    def __len__(self) -> int:
        return self._count

    @property
    def closed(self) -> bool:
        return self._closed

    async def __aenter__(self) -> DisposerSet:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()

    def add(self, disposer: Disposer, name: str | None = None) -> None:
        """Register a disposer.

        Adding to a closed set runs nothing later, so the caller gets a
        RuntimeError instead of a silent leak.
        """
        if self._closed:
            raise RuntimeError("Cannot add a disposer to a closed DisposerSet")

        label = name or getattr(disposer, "__name__", repr(disposer))
        self._stack.push_async_callback(_run_disposer, disposer, label)
        self._count += 1

    async def aclose(self) -> None:
        """Run every registered disposer (LIFO). Safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True
        count, self._count = self._count, 0
        await self._stack.aclose()
        if count:
            logger.debug(f"Released {count} disposer(s)")


async def _run_disposer(disposer: Disposer, label: str) -> None:
    try:
        result = disposer()
        if inspect.isawaitable(result):
            await result
    except Exception as e:
        logger.error(f"Disposer {label} failed: {e}")


class SessionState:
    """Enabled flag, generation counter and disposer set of the current session."""

    def __init__(self) -> None:
        self.generation = 0
        self.active = False
        self.disposers: DisposerSet | None = None

    def begin(self) -> int:
        """Start a new session and return its generation."""
        if self.active:
            raise RuntimeError("A debug session is already active")

        self.generation += 1
        self.active = True
        self.disposers = DisposerSet()
        logger.debug(f"Debug session {self.generation} started")
        return self.generation

    def is_current(self, generation: int) -> bool:
        """Whether a callback started under `generation` may still mutate state."""
        return self.active and generation == self.generation

    def add_disposer(self, disposer: Disposer, name: str | None = None) -> None:
        if self.disposers is None:
            raise RuntimeError("No active debug session to attach a disposer to")
        self.disposers.add(disposer, name)

    def invalidate(self) -> DisposerSet | None:
        """Mark the session torn down without awaiting anything.

        Returns:
            The disposers still to be released, or None if there was no session
        """
        was_active = self.active
        self.active = False
        if was_active:
            # New generation so late callbacks from the old one can never match.
            self.generation += 1
            logger.debug(f"Debug session invalidated (generation now {self.generation})")

        disposers, self.disposers = self.disposers, None
        return disposers

    async def teardown(self) -> None:
        """Invalidate the session and release its disposers. Safe when idle."""
        disposers = self.invalidate()
        if disposers is not None:
            await disposers.aclose()
