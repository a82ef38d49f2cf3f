"""Tests for retrying commands that lost a version race."""

import pytest
from grocery.domain import grocery
from grocery.order.vendor_decision import AcceptOrder
from grocery.utils.retry import max_attempts, process_with_retry
from protean.exceptions import ExpectedVersionError


class _FlakyProcess:
    """Stands in for domain.process; loses the version race `failures` times."""

    def __init__(self, failures, result="done"):
        self.failures = failures
        self.result = result
        self.calls = 0

    def __call__(self, command, asynchronous=True):
        self.calls += 1
        if self.calls <= self.failures:
            raise ExpectedVersionError("Wrong expected version")
        return self.result


@pytest.fixture()
def command():
    return AcceptOrder(order_id="ord-1", actor_role="Vendor", actor_id="vendor-1")


def test_conflict_is_retried(monkeypatch, command):
    flaky = _FlakyProcess(failures=1)
    monkeypatch.setattr(grocery, "process", flaky)
    assert process_with_retry(command) == "done"
    assert flaky.calls == 2


def test_gives_up_after_the_last_attempt(monkeypatch, command):
    flaky = _FlakyProcess(failures=5)
    monkeypatch.setattr(grocery, "process", flaky)
    with pytest.raises(ExpectedVersionError):
        process_with_retry(command, attempts=2)
    assert flaky.calls == 2


def test_attempts_come_from_environment(monkeypatch):
    monkeypatch.setenv("COMMAND_RETRY_ATTEMPTS", "5")
    assert max_attempts() == 5
    monkeypatch.setenv("COMMAND_RETRY_ATTEMPTS", "0")
    assert max_attempts() == 1


def test_default_attempts(monkeypatch):
    monkeypatch.delenv("COMMAND_RETRY_ATTEMPTS", raising=False)
    assert max_attempts() == 3
