"""
Stream naming conventions.

Each bounded context publishes to one Redis stream; the event type's first
segment picks it. Consumer groups read whichever streams they care about.
"""

ORDER_STREAM = "order-events"
KITCHEN_STREAM = "kitchen-events"
RESERVATION_STREAM = "reservation-events"
MENU_STREAM = "menu-events"
INVENTORY_STREAM = "inventory-events"

ALL_STREAMS: tuple[str, ...] = (
    ORDER_STREAM,
    KITCHEN_STREAM,
    RESERVATION_STREAM,
    MENU_STREAM,
    INVENTORY_STREAM,
)

_STREAM_BY_CONTEXT: dict[str, str] = {
    "order": ORDER_STREAM,
    "kitchen": KITCHEN_STREAM,
    "reservation": RESERVATION_STREAM,
    "menu": MENU_STREAM,
    "inventory": INVENTORY_STREAM,
}


def stream_for_event_type(event_type: str) -> str:
    """
    Route an event type to its stream.

        stream_for_event_type("kitchen.order.completed")  # "kitchen-events"

    Raises:
        ValueError: If the type does not belong to a known context.
    """
    context, _, _ = event_type.partition(".")
    try:
        return _STREAM_BY_CONTEXT[context]
    except KeyError:
        raise ValueError(f"No stream for event type: {event_type}") from None
