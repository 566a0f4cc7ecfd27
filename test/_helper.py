"""
Shared helpers for the test modules: order line builders, deterministic clocks,
and the ids of the default menu.
"""
from datetime import datetime, timedelta, timezone

from pizzeria.schemas import PizzaItemDto

MARGHERITA = 1
MARINARA = 2
QUATTRO_STAGIONI = 3
DIAVOLA = 4
UNKNOWN_PIZZA = 999

T0 = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)


def line(pizza_id: int = MARGHERITA, quantity: int = 1, notes: str | None = None) -> PizzaItemDto:
    return PizzaItemDto(pizza_id=pizza_id, quantity=quantity, notes=notes)


class SteppingClock:
    """Returns T0, T0+step, T0+2*step, ... on successive calls."""

    def __init__(self, start: datetime = T0, step: timedelta = timedelta(seconds=1)):
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now = current + self.step
        return current


class FrozenClock:
    """Always returns the same instant, to force created_at collisions."""

    def __init__(self, instant: datetime = T0):
        self.instant = instant

    def __call__(self) -> datetime:
        return self.instant


def scripted_codes(*codes: str):
    """Code generator that hands out the given codes in order."""
    remaining = list(codes)

    def _next(length: int) -> str:
        return remaining.pop(0)

    return _next
