"""
The ReconcileVerdict is the single decision value produced by one
reconciliation. It is the only channel through which retry and backoff are
communicated to the caller.
"""

# Standard
from dataclasses import dataclass
from enum import Enum
from typing import Optional
import datetime


class VerdictAction(Enum):
    """The four possible outcomes of a reconciliation"""

    # Nothing more to do, do not requeue
    CONTINUE = "Continue"

    # Check again after a bounded delay
    REQUEUE_AFTER = "RequeueAfter"

    # Check again right away
    REQUEUE_IMMEDIATE = "RequeueImmediate"

    # Something failed. The caller requeues with the error's delay or its
    # default backoff and surfaces the cause.
    ERROR = "Error"


@dataclass(frozen=True)
class ReconcileVerdict:
    """Sum type over VerdictAction. Use the constructors below rather than
    building instances directly.
    """

    action: VerdictAction
    requeue_after: Optional[datetime.timedelta] = None
    error: Optional[Exception] = None

    ## Constructors ############################################################

    @classmethod
    def proceed(cls) -> "ReconcileVerdict":
        return cls(VerdictAction.CONTINUE)

    @classmethod
    def after(cls, seconds: float) -> "ReconcileVerdict":
        return cls(
            VerdictAction.REQUEUE_AFTER,
            requeue_after=datetime.timedelta(seconds=seconds),
        )

    @classmethod
    def immediate(cls) -> "ReconcileVerdict":
        return cls(VerdictAction.REQUEUE_IMMEDIATE)

    @classmethod
    def failed(
        cls, error: Exception, seconds: Optional[float] = None
    ) -> "ReconcileVerdict":
        """An ERROR verdict. If seconds is given, the caller should retry after
        that bounded delay rather than its default backoff.
        """
        requeue_after = None
        if seconds is not None:
            requeue_after = datetime.timedelta(seconds=seconds)
        return cls(VerdictAction.ERROR, requeue_after=requeue_after, error=error)

    ## Properties ##############################################################

    @property
    def is_continue(self) -> bool:
        return self.action == VerdictAction.CONTINUE

    @property
    def is_error(self) -> bool:
        return self.action == VerdictAction.ERROR

    def __str__(self):
        parts = [self.action.value]
        if self.requeue_after is not None:
            parts.append(f"{self.requeue_after.total_seconds()}s")
        if self.error is not None:
            parts.append(f"{type(self.error).__name__}: {self.error}")
        return "(" + ", ".join(parts) + ")"
