"""
Root conftest.py for all backend tests.

This file makes fixtures available to all test files across all apps.
"""
import pytest
from tenant.managers import set_current_tenant


# ============================================================================
# AUTO-USE FIXTURES (Run automatically for every test)
# ============================================================================

@pytest.fixture(autouse=True)
def reset_tenant_context():
    """
    Reset tenant context after each test.

    CRITICAL: This prevents tenant context from leaking between tests.
    """
    yield  # Run the test

    # After test: ALWAYS reset to None
    set_current_tenant(None)


@pytest.fixture(autouse=True)
def silence_channel_layer(monkeypatch):
    """
    Record realtime events instead of pushing them through the channel layer.

    Tests that care about events use the ``captured_events`` fixture, which
    returns the same list.
    """
    from notifications.services import RealtimeEventPublisher

    sent = []

    def fake_send(group_name, message):
        sent.append((group_name, message["event"]))

    monkeypatch.setattr(RealtimeEventPublisher, "_send", staticmethod(fake_send))
    return sent


@pytest.fixture
def captured_events(silence_channel_layer):
    """
    List of (group_name, event) tuples sent so far.

    Events are deferred to transaction commit, so combine with
    ``django_capture_on_commit_callbacks(execute=True)``.
    """
    return silence_channel_layer
