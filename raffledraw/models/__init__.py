from .base import Base

# import models so Alembic/autoloaders can discover mappers
from .participant import RaffleParticipant  # noqa: F401
from .raffle import (  # noqa: F401
    MonthlyRaffle,
    MonthlyRaffleWeek,
    WeeklyRaffle,
    weekly_raffle_entries,
    weekly_raffle_exclusions,
)
from .product import ProductRaffle, ProductRaffleStatus, product_raffle_entries  # noqa: F401
from .winner import PaymentMethod, PaymentStatus, RaffleWinner  # noqa: F401

__all__ = [
    "Base",
    "MonthlyRaffle",
    "MonthlyRaffleWeek",
    "PaymentMethod",
    "PaymentStatus",
    "ProductRaffle",
    "ProductRaffleStatus",
    "RaffleParticipant",
    "RaffleWinner",
    "WeeklyRaffle",
    "product_raffle_entries",
    "weekly_raffle_entries",
    "weekly_raffle_exclusions",
]
