"""Split a monthly fund and participant pool across the weeks of a month."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Mapping, Union

from ..errors import InvalidWeeklyDistributionError, NoActiveWeeksError

logger = logging.getLogger(__name__)

Number = Union[int, float, str, Decimal]

ALLOWED_WEEK_COUNTS = (4, 5)


def to_decimal(value: Number) -> Decimal:
    """Convert ``value`` to :class:`~decimal.Decimal` without float artefacts."""

    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("boolean values are not valid amounts")
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


@dataclass(frozen=True)
class WeeklyAllocation:
    """Fund share and participant cap assigned to one week.

    Attributes
    ----------
    week : int
        1-based week index.
    fund_pct : Decimal
        Percentage of the monthly fund assigned to the week.
    fund : Decimal
        ``total_fund * fund_pct / 100``; not rounded.
    participants : int
        Number of participants allocated to the week.
    """

    week: int
    fund_pct: Decimal
    fund: Decimal
    participants: int

    @property
    def is_active(self) -> bool:
        return self.fund_pct > 0


def _check_week_count(week_count: int) -> None:
    if week_count not in ALLOWED_WEEK_COUNTS:
        raise InvalidWeeklyDistributionError(
            f"week_count must be one of {ALLOWED_WEEK_COUNTS}, got {week_count}"
        )


def _check_week_key(week: int, week_count: int) -> None:
    if not 1 <= int(week) <= week_count:
        raise InvalidWeeklyDistributionError(
            f"week {week} is outside the month's {week_count} draw weeks"
        )


def default_weekly_fund_pct(week_count: int) -> dict[int, int]:
    """Return an even integer split of 100% across ``week_count`` weeks.

    The first ``100 % week_count`` weeks receive one extra point so the
    result always sums to exactly 100.
    """

    _check_week_count(week_count)
    base, extra = divmod(100, week_count)
    return {week: base + (1 if week <= extra else 0) for week in range(1, week_count + 1)}


def validate_weekly_fund_pct(
    weekly_fund_pct: Mapping[int, Number], week_count: int
) -> dict[int, Decimal]:
    """Check a weekly fund split and return it normalised to ``Decimal``.

    Weeks missing from ``weekly_fund_pct`` are filled with zero.

    Raises
    ------
    InvalidWeeklyDistributionError
        If a key lies outside ``1..week_count``, a percentage is negative, or
        the percentages do not sum to exactly 100.
    """

    _check_week_count(week_count)
    normalized: dict[int, Decimal] = {}
    for week in range(1, week_count + 1):
        normalized[week] = Decimal(0)
    for week, pct in weekly_fund_pct.items():
        _check_week_key(week, week_count)
        value = to_decimal(pct)
        if value < 0:
            raise InvalidWeeklyDistributionError(
                f"week {week} has a negative fund percentage ({value})"
            )
        normalized[int(week)] = value

    total = sum(normalized.values(), Decimal(0))
    if total != 100:
        raise InvalidWeeklyDistributionError(
            f"weekly fund percentages must sum to exactly 100, got {total}"
        )
    return normalized


def validate_participant_distribution(
    weekly_participants: Mapping[int, int],
    expected_total: int,
    week_count: int,
) -> None:
    """Check that per-week participant counts add up to ``expected_total``."""

    _check_week_count(week_count)
    total = 0
    for week, count in weekly_participants.items():
        _check_week_key(week, week_count)
        if count < 0:
            raise InvalidWeeklyDistributionError(
                f"week {week} has a negative participant count ({count})"
            )
        total += count
    if total != expected_total:
        raise InvalidWeeklyDistributionError(
            f"participant distribution must sum to exactly {expected_total}, got {total}"
        )


def allocate(
    total_fund: Number,
    total_participants: int,
    weekly_fund_pct: Mapping[int, Number],
    week_count: int,
) -> dict[int, WeeklyAllocation]:
    """Allocate the monthly fund and participants to each week.

    Participants are spread evenly over the *active* weeks only, i.e. weeks
    whose fund percentage is greater than zero. The first
    ``total_participants % active_weeks`` active weeks (in week order) receive
    one extra participant. Inactive weeks always receive zero participants.

    The fund percentages are used as given; making them sum to 100 is the
    job of :func:`validate_weekly_fund_pct` at configuration time.

    Parameters
    ----------
    total_fund : Number
        Monthly prize fund.
    total_participants : int
        Number of participants to distribute.
    weekly_fund_pct : Mapping[int, Number]
        Fund percentage keyed by 1-based week index. Missing weeks count as 0.
    week_count : int
        Number of draw weeks in the month (4 or 5).

    Returns
    -------
    dict[int, WeeklyAllocation]
        Allocation for every week ``1..week_count``.

    Raises
    ------
    NoActiveWeeksError
        If participants must be placed but no week has any fund.
    InvalidWeeklyDistributionError
        If ``week_count`` is not 4 or 5, a week key lies outside
        ``1..week_count``, or ``total_participants`` is negative.
    """

    _check_week_count(week_count)
    if total_participants < 0:
        raise InvalidWeeklyDistributionError("total_participants must be non-negative")

    for week in weekly_fund_pct:
        _check_week_key(week, week_count)

    fund = to_decimal(total_fund)
    pct_by_week = {
        week: to_decimal(weekly_fund_pct.get(week, 0))
        for week in range(1, week_count + 1)
    }
    active_weeks = [week for week, pct in pct_by_week.items() if pct > 0]

    if not active_weeks and total_participants > 0:
        raise NoActiveWeeksError(
            f"cannot allocate {total_participants} participants: "
            "no week has a fund percentage above zero"
        )

    participants_by_week = {week: 0 for week in pct_by_week}
    if active_weeks:
        base, remainder = divmod(total_participants, len(active_weeks))
        for index, week in enumerate(active_weeks):
            participants_by_week[week] = base + (1 if index < remainder else 0)

    logger.debug(
        f"Allocated {total_participants} participants over active weeks "
        f"{active_weeks}: {participants_by_week}"
    )
    return {
        week: WeeklyAllocation(
            week=week,
            fund_pct=pct,
            fund=fund * pct / 100,
            participants=participants_by_week[week],
        )
        for week, pct in pct_by_week.items()
    }


__all__ = [
    "ALLOWED_WEEK_COUNTS",
    "WeeklyAllocation",
    "allocate",
    "default_weekly_fund_pct",
    "to_decimal",
    "validate_participant_distribution",
    "validate_weekly_fund_pct",
]
