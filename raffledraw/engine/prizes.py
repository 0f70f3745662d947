"""Convert prize rules into per-position percentages and amounts."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterator, Optional

from .allocation import Number, to_decimal
from ..errors import (
    ConfigurationError,
    NoRemainderForExtraWinnersError,
    PrizePoolExceededError,
)

PODIUM_SIZE = 3


@dataclass(frozen=True)
class RemainderRange:
    """Positions ``start..end`` that share the remainder evenly."""

    start: int
    end: int
    per_position_pct: Decimal

    @property
    def size(self) -> int:
        return self.end - self.start + 1


@dataclass(frozen=True)
class PrizeDistribution:
    """Top-3 percentages plus the optional even split for positions 4..N.

    Attributes
    ----------
    winners_count : int
        Number of prize positions.
    first_pct, second_pct, third_pct : Decimal
        Fixed percentages for the podium.
    remainder_range : Optional[RemainderRange]
        Present only when ``winners_count > 3``.
    """

    winners_count: int
    first_pct: Decimal
    second_pct: Decimal
    third_pct: Decimal
    remainder_range: Optional[RemainderRange] = None

    @property
    def podium_pct(self) -> Decimal:
        return self.first_pct + self.second_pct + self.third_pct

    @property
    def remainder_pct(self) -> Decimal:
        """Share left after the podium, never negative."""
        return max(Decimal(0), Decimal(100) - self.podium_pct)


@dataclass(frozen=True)
class PrizeSlot:
    position: int
    percent: Decimal

    def amount(self, fund: Number) -> Decimal:
        return to_decimal(fund) * self.percent / 100


class PrizeTable:
    """Ordered mapping of position to percentage for one raffle.

    Iterating yields :class:`PrizeSlot` objects in position order.
    """

    def __init__(self, distribution: PrizeDistribution, slots: list[PrizeSlot]) -> None:
        self.distribution = distribution
        self._slots = list(slots)
        self._by_position = {slot.position: slot for slot in self._slots}

    def __iter__(self) -> Iterator[PrizeSlot]:
        return iter(self._slots)

    def __len__(self) -> int:
        return len(self._slots)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PrizeTable):
            return NotImplemented
        return self._slots == other._slots

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return f"<PrizeTable({[(s.position, str(s.percent)) for s in self._slots]})>"

    @property
    def winners_count(self) -> int:
        return self.distribution.winners_count

    def percent(self, position: int) -> Decimal:
        """Return the percentage awarded to ``position``."""
        try:
            return self._by_position[position].percent
        except KeyError as exc:
            raise KeyError(f"position {position} is not part of this prize table") from exc

    def amount(self, position: int, fund: Number) -> Decimal:
        """Return ``fund * percent(position) / 100`` without rounding."""
        return to_decimal(fund) * self.percent(position) / 100

    def total_percent(self) -> Decimal:
        return sum((slot.percent for slot in self._slots), Decimal(0))

    def amounts(self, fund: Number) -> list[tuple[int, Decimal, Decimal]]:
        """Return ``(position, percent, amount)`` rows for ``fund``."""
        return [(slot.position, slot.percent, slot.amount(fund)) for slot in self._slots]

    def to_json(self, fund: Optional[Number] = None) -> list[dict[str, str | int]]:
        rows: list[dict[str, str | int]] = []
        for slot in self._slots:
            row: dict[str, str | int] = {
                "position": slot.position,
                "percent": str(slot.percent),
            }
            if fund is not None:
                row["amount"] = str(slot.amount(fund))
            rows.append(row)
        return rows


def _check_pct(name: str, value: Decimal) -> None:
    if not Decimal(0) <= value <= Decimal(100):
        raise ConfigurationError(f"{name} must be between 0 and 100, got {value}")


def build_prize_distribution(
    winners_count: int,
    first_pct: Number,
    second_pct: Number,
    third_pct: Number,
) -> PrizeDistribution:
    """Validate prize rules and derive the remainder split.

    Raises
    ------
    ConfigurationError
        If ``winners_count < 1`` or a percentage lies outside ``[0, 100]``.
    PrizePoolExceededError
        If the podium percentages add up to more than 100.
    NoRemainderForExtraWinnersError
        If ``winners_count > 3`` and the podium consumes the whole fund.
    """

    if isinstance(winners_count, bool) or int(winners_count) != winners_count:
        raise ConfigurationError("winners_count must be an integer")
    if winners_count < 1:
        raise ConfigurationError(f"winners_count must be at least 1, got {winners_count}")
    winners_count = int(winners_count)

    first = to_decimal(first_pct)
    second = to_decimal(second_pct)
    third = to_decimal(third_pct)
    for name, value in (("first_pct", first), ("second_pct", second), ("third_pct", third)):
        _check_pct(name, value)

    podium = first + second + third
    if podium > 100:
        raise PrizePoolExceededError(
            f"top-3 percentages sum to {podium}, which exceeds 100"
        )

    remainder = max(Decimal(0), Decimal(100) - podium)
    remainder_range: Optional[RemainderRange] = None
    if winners_count > PODIUM_SIZE:
        if remainder <= 0:
            raise NoRemainderForExtraWinnersError(
                f"positions 4..{winners_count} need a share of the fund but the "
                "top-3 percentages already use 100"
            )
        remainder_range = RemainderRange(
            start=PODIUM_SIZE + 1,
            end=winners_count,
            per_position_pct=remainder / (winners_count - PODIUM_SIZE),
        )

    return PrizeDistribution(
        winners_count=winners_count,
        first_pct=first,
        second_pct=second,
        third_pct=third,
        remainder_range=remainder_range,
    )


def prize_table_from_distribution(distribution: PrizeDistribution) -> PrizeTable:
    podium = (distribution.first_pct, distribution.second_pct, distribution.third_pct)
    slots = [
        PrizeSlot(position=position, percent=pct)
        for position, pct in enumerate(podium[: distribution.winners_count], start=1)
    ]
    rest = distribution.remainder_range
    if rest is not None:
        slots.extend(
            PrizeSlot(position=position, percent=rest.per_position_pct)
            for position in range(rest.start, rest.end + 1)
        )
    return PrizeTable(distribution, slots)


def compute_prize_table(
    winners_count: int,
    first_pct: Number,
    second_pct: Number,
    third_pct: Number,
) -> PrizeTable:
    """Return the position to percentage table for a raffle's prize rules.

    Position 1..3 receive the fixed podium percentages (as far as
    ``winners_count`` reaches); positions ``4..winners_count`` each receive
    ``(100 - podium) / (winners_count - 3)``. With three or fewer winners
    whatever the podium leaves unassigned stays undistributed.
    """

    distribution = build_prize_distribution(winners_count, first_pct, second_pct, third_pct)
    return prize_table_from_distribution(distribution)


def single_prize_table() -> PrizeTable:
    """Prize table of a single-winner raffle that awards the whole prize."""
    return compute_prize_table(1, 100, 0, 0)


__all__ = [
    "PODIUM_SIZE",
    "PrizeDistribution",
    "PrizeSlot",
    "PrizeTable",
    "RemainderRange",
    "build_prize_distribution",
    "compute_prize_table",
    "prize_table_from_distribution",
    "single_prize_table",
]
