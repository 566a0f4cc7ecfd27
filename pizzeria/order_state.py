"""
Order lifecycle state machine. Valid transitions enforce kitchen workflow rules.
"""
from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    IN_PREPARATION = "IN_PREPARATION"
    READY = "READY"
    COMPLETED = "COMPLETED"


# Current status -> allowed next status
VALID_TRANSITIONS: dict[OrderStatus, list[OrderStatus]] = {
    OrderStatus.PENDING: [OrderStatus.IN_PREPARATION],
    OrderStatus.IN_PREPARATION: [OrderStatus.READY],
    OrderStatus.READY: [OrderStatus.COMPLETED],
    OrderStatus.COMPLETED: [],  # terminal
}

STATUS_DESCRIPTIONS: dict[str, dict[OrderStatus, str]] = {
    "it": {
        OrderStatus.PENDING: "In attesa",
        OrderStatus.IN_PREPARATION: "In preparazione",
        OrderStatus.READY: "Pronto",
        OrderStatus.COMPLETED: "Completato",
    },
    "en": {
        OrderStatus.PENDING: "Pending",
        OrderStatus.IN_PREPARATION: "In preparation",
        OrderStatus.READY: "Ready",
        OrderStatus.COMPLETED: "Completed",
    },
}

STATUS_MESSAGES: dict[str, dict[OrderStatus, str]] = {
    "it": {
        OrderStatus.PENDING: "Il tuo ordine è in coda e verrà preso in carico a breve",
        OrderStatus.IN_PREPARATION: "Il pizzaiolo sta preparando il tuo ordine",
        OrderStatus.READY: "Il tuo ordine è pronto!",
        OrderStatus.COMPLETED: "Ordine completato. Grazie!",
    },
    "en": {
        OrderStatus.PENDING: "Your order is queued and will be taken soon",
        OrderStatus.IN_PREPARATION: "The pizzaiolo is preparing your order",
        OrderStatus.READY: "Your order is ready for pickup!",
        OrderStatus.COMPLETED: "Order completed. Thank you!",
    },
}

DEFAULT_LOCALE = "it"


def is_valid_transition(current: OrderStatus | str | None, target: OrderStatus | str) -> bool:
    """True if target is allowed right after current. Unknown statuses are never valid."""
    allowed = VALID_TRANSITIONS.get(current, [])
    return target in allowed


def describe_status(status: OrderStatus, locale: str = DEFAULT_LOCALE) -> str:
    return STATUS_DESCRIPTIONS.get(locale, STATUS_DESCRIPTIONS[DEFAULT_LOCALE])[status]


def status_message(status: OrderStatus, locale: str = DEFAULT_LOCALE) -> str:
    return STATUS_MESSAGES.get(locale, STATUS_MESSAGES[DEFAULT_LOCALE])[status]
