"""Exclusion windows for past winners and the eligibility filter."""

from __future__ import annotations

import calendar
import enum
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Collection, Hashable, Iterable, Optional


class ExclusionPeriod(str, enum.Enum):
    """How long a winner stays out of future draws."""

    NEXT_WEEK = "next_week"
    NEXT_MONTH = "next_month"
    CUSTOM_WEEKS = "custom_weeks"
    CUSTOM_MONTHS = "custom_months"


class ExclusionReason(str, enum.Enum):
    WINNER = "winner"
    MANUAL = "manual"
    SUSPENSION = "suspension"


@dataclass(frozen=True)
class ExclusionPolicy:
    """Winner exclusion settings of a monthly raffle.

    Attributes
    ----------
    enabled : bool
        When ``False`` nobody is filtered out and winners are not excluded.
    period : ExclusionPeriod
        Length of the exclusion window.
    custom_period : int
        Number of weeks or months for the ``custom_*`` periods.
    """

    enabled: bool = False
    period: ExclusionPeriod = ExclusionPeriod.NEXT_MONTH
    custom_period: int = 1

    def __post_init__(self) -> None:
        # Accept raw strings coming from forms or the database.
        try:
            period = ExclusionPeriod(self.period)
        except ValueError as exc:
            raise ValueError(f"Unknown exclusion period '{self.period}'") from exc
        object.__setattr__(self, "period", period)
        if self.custom_period < 1:
            raise ValueError("custom_period must be at least 1")

    def to_json(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "period": self.period.value,
            "custom_period": self.custom_period,
        }


@dataclass(frozen=True)
class ExclusionStatus:
    is_excluded: bool = False
    excluded_until: Optional[datetime] = None
    reason: Optional[ExclusionReason] = None


@dataclass
class Participant:
    """A raffle participant as seen by the engine.

    ``exclusion_status`` is replaced when the participant wins a draw whose
    monthly raffle has exclusion enabled.
    """

    id: Hashable
    name: str
    email: Optional[str] = None
    exclusion_status: ExclusionStatus = field(default_factory=ExclusionStatus)


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime; naive values are taken as UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def add_months(value: datetime, months: int) -> datetime:
    """Shift ``value`` by whole calendar months.

    The day of month is kept when possible and clamped to the last day of a
    shorter target month, so Jan 31 + 1 month is Feb 28 (or Feb 29).
    """

    index = value.month - 1 + months
    year = value.year + index // 12
    month = index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def compute_excluded_until(policy: ExclusionPolicy, draw_date: datetime) -> datetime:
    """Return the end of the exclusion window for a win on ``draw_date``."""

    period = policy.period
    if period is ExclusionPeriod.NEXT_WEEK:
        return draw_date + timedelta(days=7)
    if period is ExclusionPeriod.NEXT_MONTH:
        return add_months(draw_date, 1)
    if period is ExclusionPeriod.CUSTOM_WEEKS:
        return draw_date + timedelta(days=7 * policy.custom_period)
    if period is ExclusionPeriod.CUSTOM_MONTHS:
        return add_months(draw_date, policy.custom_period)
    raise ValueError(f"Unsupported exclusion period '{period}'")  # pragma: no cover


def winner_exclusion_status(policy: ExclusionPolicy, draw_date: datetime) -> ExclusionStatus:
    return ExclusionStatus(
        is_excluded=True,
        excluded_until=compute_excluded_until(policy, draw_date),
        reason=ExclusionReason.WINNER,
    )


def is_time_excluded(status: ExclusionStatus, now: datetime) -> bool:
    """``True`` while ``now`` is on or before ``status.excluded_until``.

    A participant flagged as excluded without an end date is not held back
    by time; only an explicit exclusion list can keep them out.
    """

    if not status.is_excluded or status.excluded_until is None:
        return False
    return as_utc(now) <= as_utc(status.excluded_until)


def can_participant_enter(
    participant: Participant,
    exclusion_list: Collection[Hashable],
    now: datetime,
) -> bool:
    """Check a single participant against a raffle's exclusion list and window."""

    if participant.id in exclusion_list:
        return False
    return not is_time_excluded(participant.exclusion_status, now)


def eligible(
    pool: Iterable[Participant],
    exclusion_list: Collection[Hashable],
    policy: ExclusionPolicy,
    now: datetime,
) -> list[Participant]:
    """Return the participants of ``pool`` allowed to win.

    With ``policy.enabled`` false the pool is returned unchanged (as a list,
    preserving order). Otherwise a participant is dropped when listed in
    ``exclusion_list`` or while their exclusion window is still running.
    """

    participants = list(pool)
    if not policy.enabled:
        return participants
    excluded_ids = set(exclusion_list)
    return [
        participant
        for participant in participants
        if can_participant_enter(participant, excluded_ids, now)
    ]


def count_excluded(
    exclusion_list: Iterable[Hashable],
    participants: Iterable[Participant],
    now: datetime,
) -> int:
    """Count listed ids whose exclusion is still in force at ``now``.

    Ids that are not in ``participants`` are ignored. A listed participant
    without a running time window still counts as excluded.
    """

    by_id = {participant.id: participant for participant in participants}
    count = 0
    for participant_id in set(exclusion_list):
        participant = by_id.get(participant_id)
        if participant is None:
            continue
        status = participant.exclusion_status
        if status.is_excluded and status.excluded_until is not None:
            if as_utc(now) <= as_utc(status.excluded_until):
                count += 1
            continue
        count += 1
    return count


def describe_exclusion_period(policy: ExclusionPolicy) -> str:
    """Short English description of the exclusion window."""

    if not policy.enabled:
        return "No exclusion"
    n = policy.custom_period
    if policy.period is ExclusionPeriod.NEXT_WEEK:
        return "Until the next weekly draw"
    if policy.period is ExclusionPeriod.NEXT_MONTH:
        return "Until next month"
    if policy.period is ExclusionPeriod.CUSTOM_WEEKS:
        return f"For {n} week{'s' if n > 1 else ''}"
    return f"For {n} month{'s' if n > 1 else ''}"


__all__ = [
    "ExclusionPeriod",
    "ExclusionPolicy",
    "ExclusionReason",
    "ExclusionStatus",
    "Participant",
    "add_months",
    "as_utc",
    "can_participant_enter",
    "compute_excluded_until",
    "count_excluded",
    "describe_exclusion_period",
    "eligible",
    "is_time_excluded",
    "winner_exclusion_status",
]
