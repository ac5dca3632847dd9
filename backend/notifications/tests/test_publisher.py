"""
Realtime Event Tests

Order and table changes are published to the restaurant's channel group once
the change commits. Publishing problems are logged and never fail the order.
"""
import threading
import time

import pytest
from unittest.mock import patch

from orders.exceptions import ValidationFailure
from orders.services import OrderItemService, OrderService
from notifications.services import (
    EventDispatcher,
    EventType,
    RealtimeEventPublisher,
    realtime_publisher,
    restaurant_group_name,
)

# Import fixtures
from dineflow_core.tests.fixtures import *


def event_types(captured_events):
    return [event["type"] for _group, event in captured_events]


@pytest.mark.django_db
class TestOrderEvents:

    def test_place_order_publishes_created_and_table_change(
        self, tenant_a, biryani, table_t1, captured_events, django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks(execute=True):
            order = OrderService.place_order(tenant_a, [line(biryani, 2)], table_id=table_t1.id).order

        assert event_types(captured_events) == [
            EventType.ORDER_CREATED,
            EventType.TABLE_STATUS_CHANGED,
        ]
        group, created = captured_events[0]
        assert group == f"restaurant_{tenant_a.id}_events"
        assert created["restaurant_id"] == str(tenant_a.id)
        payload = created["payload"]["order"]
        assert payload["id"] == str(order.id)
        assert payload["total_amount"] == "460.00"
        assert payload["items"][0]["item_name"] == "Chicken Biryani"

        _group, table_event = captured_events[1]
        assert table_event["payload"]["previous_status"] == "AVAILABLE"
        assert table_event["payload"]["status"] == "OCCUPIED"

    def test_append_to_served_order_publishes_items_and_status(
        self, tenant_a, biryani, lassi, captured_events, django_capture_on_commit_callbacks
    ):
        order = OrderService.place_order(tenant_a, [line(biryani)]).order
        OrderService.update_order_status(tenant_a, order.id, "SERVED")

        with django_capture_on_commit_callbacks(execute=True):
            OrderItemService.append_items(tenant_a, order.id, [line(lassi)])

        assert event_types(captured_events) == [
            EventType.ORDER_ITEMS_ADDED,
            EventType.ORDER_STATUS_CHANGED,
        ]
        items_event = captured_events[0][1]
        assert [item["item_name"] for item in items_event["payload"]["new_items"]] == ["Mango Lassi"]
        status_event = captured_events[1][1]
        assert status_event["payload"]["previous_status"] == "SERVED"
        assert status_event["payload"]["status"] == "PENDING"

    def test_payment_publishes_order_updated(
        self, tenant_a, biryani, captured_events, django_capture_on_commit_callbacks
    ):
        order = OrderService.place_order(tenant_a, [line(biryani)]).order

        with django_capture_on_commit_callbacks(execute=True):
            OrderService.update_payment_status(tenant_a, order.id, "PAID", payment_method="CARD")

        assert event_types(captured_events) == [EventType.ORDER_UPDATED]
        payload = captured_events[0][1]["payload"]["order"]
        assert payload["payment_status"] == "PAID"
        assert payload["paid_amount"] == "230.00"
        assert payload["balance_due"] == "0.00"

    def test_failed_mutation_publishes_nothing(
        self, tenant_a, biryani, captured_events, django_capture_on_commit_callbacks
    ):
        order = OrderService.place_order(tenant_a, [line(biryani)]).order

        with django_capture_on_commit_callbacks(execute=True):
            with pytest.raises(ValidationFailure):
                OrderService.cancel_order(tenant_a, order.id, "no")

        assert captured_events == []

    def test_events_go_to_each_restaurants_group(
        self, tenant_a, tenant_b, biryani, menu_item_tenant_b,
        captured_events, django_capture_on_commit_callbacks
    ):
        """
        CRITICAL: Verify restaurant B never receives restaurant A's events
        """
        with django_capture_on_commit_callbacks(execute=True):
            OrderService.place_order(tenant_a, [line(biryani)])
            OrderService.place_order(tenant_b, [line(menu_item_tenant_b)])

        groups = [group for group, _event in captured_events]
        assert groups == [restaurant_group_name(tenant_a.id), restaurant_group_name(tenant_b.id)]


@pytest.mark.django_db
class TestPublisherResilience:

    def test_disabled_by_setting(
        self, settings, tenant_a, biryani, captured_events, django_capture_on_commit_callbacks
    ):
        settings.REALTIME_EVENTS_ENABLED = False

        with django_capture_on_commit_callbacks(execute=True):
            OrderService.place_order(tenant_a, [line(biryani)])

        assert captured_events == []

    def test_payload_error_does_not_fail_order(
        self, tenant_a, biryani, captured_events, django_capture_on_commit_callbacks
    ):
        with patch.object(RealtimeEventPublisher, "_order_payload", side_effect=RuntimeError("boom")):
            with django_capture_on_commit_callbacks(execute=True):
                outcome = OrderService.place_order(tenant_a, [line(biryani)])

        assert outcome.order.pk is not None
        assert captured_events == []

    def test_singleton(self):
        assert RealtimeEventPublisher() is realtime_publisher


class SlowChannelLayer:
    """Channel layer whose group_send blocks until released."""

    def __init__(self):
        self.release = threading.Event()
        self.sent = []

    async def group_send(self, group_name, message):
        self.release.wait(timeout=5)
        self.sent.append((group_name, message["event"]))


class TestChannelLayerSend:
    """Delivery runs on the dispatcher's background thread"""

    def test_deliver_without_channel_layer_is_logged(self):
        with patch("channels.layers.get_channel_layer", return_value=None):
            EventDispatcher.deliver(
                "restaurant_x_events",
                {"type": "lifecycle_event", "event": {"type": EventType.ORDER_UPDATED}},
            )

    def test_deliver_error_is_logged(self):
        with patch("channels.layers.get_channel_layer", side_effect=RuntimeError("redis down")):
            EventDispatcher.deliver(
                "restaurant_x_events",
                {"type": "lifecycle_event", "event": {"type": EventType.ORDER_UPDATED}},
            )

    def test_dispatcher_keeps_publish_order(self):
        layer = SlowChannelLayer()
        layer.release.set()
        dispatcher = EventDispatcher()

        with patch("channels.layers.get_channel_layer", return_value=layer):
            for event_type in (EventType.ORDER_CREATED, EventType.ORDER_UPDATED):
                dispatcher.submit("restaurant_x_events", {"type": "lifecycle_event", "event": {"type": event_type}})
            dispatcher.shutdown(wait=True)

        assert [event["type"] for _group, event in layer.sent] == [
            EventType.ORDER_CREATED,
            EventType.ORDER_UPDATED,
        ]


@pytest.mark.django_db
class TestNonBlockingDelivery:

    def test_slow_channel_layer_does_not_delay_place_order(
        self, tenant_a, biryani, monkeypatch, django_capture_on_commit_callbacks
    ):
        """
        CRITICAL: Verify a hanging channel layer never holds up the order request

        Business Impact: a slow Redis would otherwise stall every waiter's tablet
        """
        layer = SlowChannelLayer()
        dispatcher = EventDispatcher()
        monkeypatch.setattr("channels.layers.get_channel_layer", lambda *args, **kwargs: layer)
        monkeypatch.setattr(RealtimeEventPublisher, "_send", staticmethod(dispatcher.submit))

        try:
            started = time.monotonic()
            with django_capture_on_commit_callbacks(execute=True):
                outcome = OrderService.place_order(tenant_a, [line(biryani)])
            elapsed = time.monotonic() - started

            assert outcome.order.pk is not None
            assert elapsed < 2
            assert layer.sent == []
        finally:
            layer.release.set()
            dispatcher.shutdown(wait=True)

        assert [event["type"] for _group, event in layer.sent] == [EventType.ORDER_CREATED]
