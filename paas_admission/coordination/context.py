"""Request-scoped admission context.

Every admission request is handled independently. The dry-run flag and the
request deadline travel with the handling call through a context variable so
that the name registry can honour both without them being threaded through
every validator signature.
"""
import time
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Iterator, Optional


class DeadlineExceededError(Exception):
    """Raised when the admission request deadline has passed."""


@dataclass(frozen=True)
class AdmissionContext:
    """Per-request flags consulted by the coordination layer."""

    dry_run: bool = False
    deadline: Optional[float] = None  # time.monotonic() value

    def remaining(self) -> Optional[float]:
        if self.deadline is None:
            return None
        return self.deadline - time.monotonic()


_current: ContextVar[AdmissionContext] = ContextVar(
    "admission_context", default=AdmissionContext()
)


@contextmanager
def admission_context(
    dry_run: bool = False, timeout: Optional[float] = None
) -> Iterator[AdmissionContext]:
    """Bind dry-run flag and deadline to the current request.

    Args:
        dry_run: Whether the request is a simulation
        timeout: Seconds until the request deadline (None = no deadline)

    Yields:
        The bound context
    """
    deadline = time.monotonic() + timeout if timeout is not None else None
    ctx = AdmissionContext(dry_run=dry_run, deadline=deadline)
    token = _current.set(ctx)
    try:
        yield ctx
    finally:
        _current.reset(token)


def current_context() -> AdmissionContext:
    return _current.get()


def is_dry_run() -> bool:
    return _current.get().dry_run


def remaining_timeout(default: float) -> float:
    """Timeout for the next store call.

    Args:
        default: Per-call timeout used when it is shorter than what is left

    Returns:
        Seconds the call may take

    Raises:
        DeadlineExceededError: If the request deadline already passed
    """
    remaining = _current.get().remaining()
    if remaining is None:
        return default
    if remaining <= 0:
        raise DeadlineExceededError("admission request deadline exceeded")
    return min(default, remaining)
