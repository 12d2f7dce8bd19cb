# storefront/utils/best_effort.py
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Outcome(Generic[T]):
    """What a best-effort call produced: its value, or the error that was swallowed."""
    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None


async def best_effort(
    call: Awaitable[T],
    *,
    op: str,
    default: Optional[T] = None,
    timeout: Optional[float] = None,
) -> Outcome[T]:
    """
    Await `call` and never let it fail the caller.

    Any exception (or a timeout) is logged and turned into Outcome(ok=False, value=default).
    Used at every graph-store call site so that the graph stays an analytics
    side-channel and never a consistency participant.
    """
    try:
        if timeout is not None:
            value = await asyncio.wait_for(call, timeout=timeout)
        else:
            value = await call
        return Outcome(ok=True, value=value)
    except asyncio.CancelledError:
        raise
    except asyncio.TimeoutError:
        logger.warning("best_effort timeout op=%s timeout=%ss", op, timeout)
        return Outcome(ok=False, value=default, error="timeout")
    except Exception as e:
        logger.warning("best_effort failed op=%s err=%s: %s", op, type(e).__name__, e)
        return Outcome(ok=False, value=default, error=f"{type(e).__name__}: {e}")
