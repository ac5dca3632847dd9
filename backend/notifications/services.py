"""
Realtime lifecycle events.

Order and table changes are broadcast through the Channels layer to one group
per restaurant. Delivery is best effort and runs off the request thread. A
slow or broken channel layer is logged and never delays or fails the order
mutation that triggered it.
"""

from concurrent.futures import ThreadPoolExecutor
from threading import Lock

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import transaction
import json
import logging

logger = logging.getLogger(__name__)


class EventType:
    ORDER_CREATED = "order.created"
    ORDER_UPDATED = "order.updated"
    ORDER_STATUS_CHANGED = "order.status_changed"
    ORDER_ITEMS_ADDED = "order.items_added"
    TABLE_STATUS_CHANGED = "table.status_changed"


def restaurant_group_name(restaurant_id) -> str:
    return f"restaurant_{restaurant_id}_events"


class RealtimeEventPublisher:
    """
    Singleton publisher for ``{type, restaurant_id, payload}`` events.

    Payloads are serialized when the event is published, so subscribers see
    the state the mutation produced. Sending waits for the surrounding
    database transaction to commit; a rolled back mutation emits nothing.
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    # --- Order events ---

    def order_created(self, order):
        self.publish(
            EventType.ORDER_CREATED,
            order.tenant_id,
            lambda: {"order": self._order_payload(order)},
        )

    def order_updated(self, order):
        self.publish(
            EventType.ORDER_UPDATED,
            order.tenant_id,
            lambda: {"order": self._order_payload(order)},
        )

    def order_status_changed(self, order, previous_status):
        self.publish(
            EventType.ORDER_STATUS_CHANGED,
            order.tenant_id,
            lambda: {
                "order": self._order_payload(order),
                "previous_status": previous_status,
                "status": order.status,
            },
        )

    def order_items_added(self, order, new_items):
        from orders.serializers import OrderItemSerializer

        self.publish(
            EventType.ORDER_ITEMS_ADDED,
            order.tenant_id,
            lambda: {
                "order": self._order_payload(order),
                "new_items": OrderItemSerializer(new_items, many=True).data,
            },
        )

    # --- Table events ---

    def table_status_changed(self, table, previous_status):
        from tables.serializers import TableSerializer

        self.publish(
            EventType.TABLE_STATUS_CHANGED,
            table.tenant_id,
            lambda: {
                "table": TableSerializer(table).data,
                "previous_status": previous_status,
                "status": table.current_status,
            },
        )

    # --- Plumbing ---

    @staticmethod
    def _order_payload(order):
        from orders.serializers import OrderSerializer

        return OrderSerializer(order).data

    def publish(self, event_type: str, restaurant_id, build_payload):
        """
        Serialize now, send after commit. ``build_payload`` is a callable so
        that serializer errors are contained here as well.
        """
        if not getattr(settings, "REALTIME_EVENTS_ENABLED", True):
            return

        group_name = restaurant_group_name(restaurant_id)
        try:
            payload = json.loads(json.dumps(build_payload(), cls=DjangoJSONEncoder))
            message = {
                "type": "lifecycle_event",
                "event": {
                    "type": event_type,
                    "restaurant_id": str(restaurant_id),
                    "payload": payload,
                },
            }

            if transaction.get_connection().in_atomic_block:
                logger.debug(f"Deferring {event_type} for {group_name} until commit")
                transaction.on_commit(lambda: self._send(group_name, message))
            else:
                self._send(group_name, message)
        except Exception as e:
            logger.error(f"Error publishing {event_type} event: {e}")

    @staticmethod
    def _send(group_name, message):
        event_dispatcher.submit(group_name, message)


class EventDispatcher:
    """
    Hands committed events to a single background thread so the request that
    produced them never waits on the channel layer. One worker keeps events in
    publish order.
    """

    def __init__(self):
        self._executor = None
        self._lock = Lock()

    def submit(self, group_name, message):
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="realtime-events")
            return self._executor.submit(self.deliver, group_name, message)

    def shutdown(self, wait=True):
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=wait)

    @staticmethod
    def deliver(group_name, message):
        from channels.layers import get_channel_layer
        from asgiref.sync import async_to_sync

        try:
            channel_layer = get_channel_layer()
            if not channel_layer:
                logger.warning("Channel layer not available. Cannot send lifecycle event.")
                return

            logger.debug(f"Broadcasting {message['event']['type']} to group: {group_name}")
            async_to_sync(channel_layer.group_send)(group_name, message)
        except Exception as e:
            logger.error(f"Error sending {message['event']['type']} to {group_name}: {e}")


# Create single, globally accessible instances.
event_dispatcher = EventDispatcher()
realtime_publisher = RealtimeEventPublisher()
