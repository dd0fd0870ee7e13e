"""Per-zone logging context.

The runner sets the pass mode and the id of the zone being processed in
context variables so that every log line emitted while validating or
persisting that zone can be correlated with it, including lines from worker
threads.
"""

import contextvars
from collections.abc import Iterator
from contextlib import contextmanager

# Context variables for record-scoped tracing data
ctx_zone_id: contextvars.ContextVar[str] = contextvars.ContextVar("zone_id", default="")
ctx_run_mode: contextvars.ContextVar[str] = contextvars.ContextVar("run_mode", default="")


@contextmanager
def zone_context(zone_id: str) -> Iterator[None]:
    """Bind a zone id to the current context for the duration of the block."""
    token = ctx_zone_id.set(zone_id)
    try:
        yield
    finally:
        ctx_zone_id.reset(token)


@contextmanager
def run_mode_context(run_mode: str) -> Iterator[None]:
    """Bind the pass mode to the current context for the duration of the block."""
    token = ctx_run_mode.set(run_mode)
    try:
        yield
    finally:
        ctx_run_mode.reset(token)
