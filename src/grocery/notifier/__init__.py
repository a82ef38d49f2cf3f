"""Notifier adapter registry — NOTIFIER_ADAPTER selects the implementation."""

import os

from grocery.notifier.port import NotifierPort

_notifier_instance: NotifierPort | None = None


def get_notifier() -> NotifierPort:
    """Return the configured notifier (singleton). Uses FakeNotifier by default."""
    global _notifier_instance
    if _notifier_instance is None:
        adapter = os.environ.get("NOTIFIER_ADAPTER", "fake")
        if adapter == "fake":
            from grocery.notifier.fake_adapter import FakeNotifier

            _notifier_instance = FakeNotifier()
        else:
            raise ValueError(f"Unknown notifier adapter: {adapter}")
    return _notifier_instance


def set_notifier(notifier: NotifierPort) -> None:
    global _notifier_instance
    _notifier_instance = notifier


def reset_notifier():
    """Reset the notifier singleton (useful for testing)."""
    global _notifier_instance
    _notifier_instance = None
