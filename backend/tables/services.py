from django.core.exceptions import ValidationError
from django.db import transaction
import logging

from orders.exceptions import NotFound, ValidationFailure
from .models import Table

logger = logging.getLogger(__name__)


class TableOccupancyService:
    """
    Keeps Table.current_status in line with the open dine-in orders that
    reference each table.

    Order services call this only after their own transaction has committed,
    so a table can briefly lag behind its orders. Every call recomputes from
    the orders themselves, which heals any such lag.
    """

    @staticmethod
    def _lock_table(tenant, table_id):
        try:
            return Table.all_objects.select_for_update().get(id=table_id, tenant=tenant)
        except (Table.DoesNotExist, ValidationError, ValueError):
            raise NotFound("Table", table_id)

    @staticmethod
    def _has_open_orders(tenant, table_id, exclude_order_id=None) -> bool:
        from orders.models import Order

        open_orders = Order.open_for_table(tenant, table_id)
        if exclude_order_id is not None:
            open_orders = open_orders.exclude(id=exclude_order_id)
        return open_orders.exists()

    @staticmethod
    def mark_occupied(tenant, table_id, staff=None) -> Table:
        """
        Flip a table to OCCUPIED, stamping ``staff`` as the assigned waiter
        when nobody is assigned yet. RESERVED/BLOCKED tables are left alone.
        """
        with transaction.atomic():
            table = TableOccupancyService._lock_table(tenant, table_id)
            if table.is_admin_locked:
                logger.info(
                    f"Table {table.table_number} is {table.current_status}; not marking occupied"
                )
                return table

            previous_status = table.current_status
            update_fields = []
            if table.current_status != Table.TableStatus.OCCUPIED:
                table.current_status = Table.TableStatus.OCCUPIED
                update_fields.append("current_status")
            if staff is not None and table.assigned_staff_id is None:
                table.assigned_staff = staff
                update_fields.append("assigned_staff")
            if update_fields:
                table.save(update_fields=update_fields + ["updated_at"])

        if previous_status != table.current_status:
            TableOccupancyService._announce(table, previous_status)
        return table

    @staticmethod
    def release_if_idle(tenant, table_id, exclude_order_id=None) -> Table:
        """
        Recompute occupancy after an order stopped holding the table.

        The table becomes AVAILABLE (and loses its assigned staff) when no
        other open, non-cancelled dine-in order references it. Otherwise it
        stays OCCUPIED. ``exclude_order_id`` lets a fully paid but still open
        order give the table up.
        """
        with transaction.atomic():
            table = TableOccupancyService._lock_table(tenant, table_id)
            if table.is_admin_locked:
                return table

            previous_status = table.current_status
            if TableOccupancyService._has_open_orders(tenant, table_id, exclude_order_id):
                if table.current_status != Table.TableStatus.OCCUPIED:
                    table.current_status = Table.TableStatus.OCCUPIED
                    table.save(update_fields=["current_status", "updated_at"])
            elif table.current_status != Table.TableStatus.AVAILABLE or table.assigned_staff_id:
                table.current_status = Table.TableStatus.AVAILABLE
                table.assigned_staff = None
                table.save(update_fields=["current_status", "assigned_staff", "updated_at"])

        if previous_status != table.current_status:
            logger.info(
                f"Table {table.table_number}: {previous_status} -> {table.current_status}"
            )
            TableOccupancyService._announce(table, previous_status)
        return table

    @staticmethod
    def set_status(tenant, table_id, new_status: str, staff=None) -> Table:
        """
        Administrative override (reserve, block, free up).
        Setting AVAILABLE clears the assigned staff.
        """
        if new_status not in Table.TableStatus.values:
            raise ValidationFailure(f"'{new_status}' is not a valid table status.")

        with transaction.atomic():
            table = TableOccupancyService._lock_table(tenant, table_id)
            previous_status = table.current_status
            table.current_status = new_status
            if new_status == Table.TableStatus.AVAILABLE:
                table.assigned_staff = None
            elif staff is not None:
                table.assigned_staff = staff
            table.save(update_fields=["current_status", "assigned_staff", "updated_at"])

        if previous_status != new_status:
            TableOccupancyService._announce(table, previous_status)
        return table

    @staticmethod
    def _announce(table, previous_status):
        from notifications.services import realtime_publisher

        realtime_publisher.table_status_changed(table, previous_status)
