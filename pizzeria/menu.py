"""
Default menu loaded into an empty catalog at startup.
"""
from decimal import Decimal

from pizzeria.models import Pizza

DEFAULT_MENU: list[Pizza] = [
    Pizza(1, "Margherita", "Pomodoro, mozzarella, basilico", Decimal("8.00")),
    Pizza(2, "Marinara", "Pomodoro, aglio, origano", Decimal("7.00")),
    Pizza(
        3,
        "Quattro Stagioni",
        "Pomodoro, mozzarella, funghi, prosciutto, carciofi, olive",
        Decimal("12.00"),
    ),
    Pizza(4, "Diavola", "Pomodoro, mozzarella, salame piccante", Decimal("10.00")),
]
