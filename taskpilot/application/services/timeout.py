"""Deadline enforcement for provider calls."""

import asyncio
from typing import Awaitable, Callable, Set, TypeVar

from taskpilot.domain.errors import AITimeoutError
from taskpilot.infra.config.logging_config import get_logger

T = TypeVar("T")

_log = get_logger("ai.timeout")

# Strong references keep abandoned calls alive until they settle.
_abandoned: Set[asyncio.Task] = set()


def _discard_outcome(task: asyncio.Task) -> None:
    _abandoned.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        _log.debug("ai.timeout.late_failure", error=str(exc))
    else:
        _log.debug("ai.timeout.late_result_discarded")


async def with_timeout(
    call: Callable[[], Awaitable[T]],
    timeout_seconds: float,
    *,
    label: str = "ai_call",
) -> T:
    """Race ``call()`` against a deadline.

    On expiry ``AITimeoutError`` is raised right away. The underlying call is
    abandoned rather than cancelled: it may still finish, but its result is
    thrown away.
    """
    task = asyncio.ensure_future(call())
    try:
        done, _ = await asyncio.wait({task}, timeout=timeout_seconds)
    except asyncio.CancelledError:
        task.cancel()
        raise

    if task in done:
        return task.result()

    _abandoned.add(task)
    task.add_done_callback(_discard_outcome)
    _log.warning("ai.timeout.expired", label=label, timeout_seconds=timeout_seconds)
    raise AITimeoutError(
        f"AI request timed out after {timeout_seconds:g}s",
        details={"timeout_seconds": timeout_seconds, "kind": label},
    )


def abandoned_count() -> int:
    """Calls that timed out and are still running."""
    return len(_abandoned)
