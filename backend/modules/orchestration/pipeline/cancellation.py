"""Cooperative cancellation for pipeline steps.

Every run owns a CancellationToken; every step invocation gets a child token
exposed through a ContextVar, so agent code can check it without the
orchestrator changing the step signature:

    from backend.modules.orchestration.pipeline.cancellation import current_cancellation

    async def process(self, input):
        token = current_cancellation()
        for chunk in chunks:
            if token and token.is_cancelled:
                return AgentResult.failure(token.reason)
            ...

Async steps are also cancelled directly by their timeout; the token matters
for work the event loop cannot interrupt (steps running in the executor).
"""
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional


class CancellationToken:
    """Cancellation flag, optionally chained to a parent token."""

    def __init__(self, parent: Optional["CancellationToken"] = None):
        self.parent = parent
        self._cancelled = False
        self._reason: Optional[str] = None

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._cancelled:
            self._cancelled = True
            self._reason = reason

    @property
    def is_cancelled(self) -> bool:
        if self._cancelled:
            return True
        return self.parent is not None and self.parent.is_cancelled

    @property
    def reason(self) -> Optional[str]:
        if self._cancelled:
            return self._reason
        if self.parent is not None:
            return self.parent.reason
        return None

    def child(self) -> "CancellationToken":
        return CancellationToken(parent=self)


_current_token: ContextVar[Optional[CancellationToken]] = ContextVar(
    "pipeline_cancellation", default=None
)


def current_cancellation() -> Optional[CancellationToken]:
    """Token of the step running in the current context, if any."""
    return _current_token.get()


@contextmanager
def cancellation_scope(token: CancellationToken) -> Iterator[CancellationToken]:
    reset = _current_token.set(token)
    try:
        yield token
    finally:
        _current_token.reset(reset)
