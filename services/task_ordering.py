"""
Ordering rules for production tasks.

Priority runs from 1 (low) to 5 (critical); sort_order is a dense
sequence among pending tasks that operators rearrange by hand.
"""

from datetime import date
from typing import Iterable, Optional

from models.product import OrderPriority
from models.production_task import PRIORITY_MAX

ORDER_PRIORITY_TO_TASK = {
    OrderPriority.URGENT: 5,
    OrderPriority.HIGH: 4,
    OrderPriority.NORMAL: 3,
    OrderPriority.LOW: 2,
}


def priority_from_order(
    order_priority: OrderPriority,
    delivery_date: Optional[date],
    today: date,
) -> int:
    """
    Derive a task priority from the order it serves.

    Orders due within 3 days gain one level (up to 5), within 7 days
    one level (up to 4).
    """
    priority = ORDER_PRIORITY_TO_TASK[order_priority]
    if delivery_date is None:
        return priority

    days_until_delivery = (delivery_date - today).days
    if days_until_delivery <= 3:
        priority = min(PRIORITY_MAX, priority + 1)
    elif days_until_delivery <= 7 and priority < 4:
        priority = min(4, priority + 1)
    return priority


def allocation_sort_key(task: dict) -> tuple:
    """Most urgent first: priority desc, then manual order, then oldest."""
    return (
        -int(task.get("priority") or 0),
        int(task.get("sort_order") or 0),
        str(task.get("created_at") or ""),
        str(task.get("id")),
    )


def order_for_allocation(tasks: Iterable[dict]) -> list[dict]:
    return sorted(tasks, key=allocation_sort_key)


def next_sort_order(pending_tasks: Iterable[dict]) -> int:
    """Position after the last pending task."""
    return max((int(t.get("sort_order") or 0) for t in pending_tasks), default=0) + 1


def dense_sort_orders(task_ids: list[str]) -> dict[str, int]:
    """Strictly increasing 1..n sequence in the given order."""
    return {task_id: index for index, task_id in enumerate(task_ids, start=1)}


def complete_queue_order(task_ids: list[str], pending_tasks: Iterable[dict]) -> list[str]:
    """
    Full pending queue for a manual reorder.

    Pending tasks missing from task_ids follow them, in their previous
    queue order.
    """
    listed = set(task_ids)
    rest = sorted(
        (t for t in pending_tasks if t["id"] not in listed),
        key=lambda t: (int(t.get("sort_order") or 0), str(t.get("created_at") or ""), t["id"]),
    )
    return list(task_ids) + [t["id"] for t in rest]
