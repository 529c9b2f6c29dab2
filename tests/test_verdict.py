"""
Tests for the ReconcileVerdict constructors
"""

# Standard
import datetime

# Local
from visitors_operator.exceptions import ClusterError
from visitors_operator.verdict import ReconcileVerdict, VerdictAction


def test_proceed():
    verdict = ReconcileVerdict.proceed()
    assert verdict.action == VerdictAction.CONTINUE
    assert verdict.is_continue
    assert not verdict.is_error
    assert verdict.requeue_after is None
    assert verdict.error is None


def test_after():
    """Make sure the delay is carried as a timedelta"""
    verdict = ReconcileVerdict.after(5)
    assert verdict.action == VerdictAction.REQUEUE_AFTER
    assert verdict.requeue_after == datetime.timedelta(seconds=5)
    assert not verdict.is_continue


def test_immediate():
    verdict = ReconcileVerdict.immediate()
    assert verdict.action == VerdictAction.REQUEUE_IMMEDIATE
    assert verdict.requeue_after is None


def test_failed_without_delay():
    """Make sure an ERROR verdict carries its cause and leaves the delay to the
    caller's default backoff
    """
    err = ClusterError("boom")
    verdict = ReconcileVerdict.failed(err)
    assert verdict.is_error
    assert verdict.error is err
    assert verdict.requeue_after is None


def test_failed_with_delay():
    verdict = ReconcileVerdict.failed(ClusterError("boom"), seconds=5)
    assert verdict.is_error
    assert verdict.requeue_after == datetime.timedelta(seconds=5)


def test_verdicts_compare_by_value():
    assert ReconcileVerdict.after(5) == ReconcileVerdict.after(5)
    assert ReconcileVerdict.after(5) != ReconcileVerdict.after(6)
    assert ReconcileVerdict.proceed() != ReconcileVerdict.immediate()


def test_str():
    assert str(ReconcileVerdict.proceed()) == "(Continue)"
    assert str(ReconcileVerdict.after(5)) == "(RequeueAfter, 5.0s)"
    assert "ClusterError: boom" in str(ReconcileVerdict.failed(ClusterError("boom")))
