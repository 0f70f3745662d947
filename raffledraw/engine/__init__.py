"""Pure computation for raffle allocation, prizes, eligibility and draws."""

from .allocation import (
    WeeklyAllocation,
    allocate,
    default_weekly_fund_pct,
    validate_participant_distribution,
    validate_weekly_fund_pct,
)
from .eligibility import (
    ExclusionPeriod,
    ExclusionPolicy,
    ExclusionReason,
    ExclusionStatus,
    Participant,
    add_months,
    can_participant_enter,
    compute_excluded_until,
    count_excluded,
    describe_exclusion_period,
    eligible,
)
from .prizes import (
    PrizeDistribution,
    PrizeSlot,
    PrizeTable,
    RemainderRange,
    build_prize_distribution,
    compute_prize_table,
    single_prize_table,
)
from .randomness import (
    RandomSource,
    SeededRandomSource,
    SequenceRandomSource,
    SystemRandomSource,
)
from .schedule import (
    WeekSchedule,
    default_monthly_name,
    default_weekly_name,
    draw_dates_in_month,
    week_count,
    week_schedule,
)
from .session import DrawResult, DrawSession, DrawStatus, DrawnWinner, SelectedWinner

__all__ = [
    "DrawResult",
    "DrawSession",
    "DrawStatus",
    "DrawnWinner",
    "ExclusionPeriod",
    "ExclusionPolicy",
    "ExclusionReason",
    "ExclusionStatus",
    "Participant",
    "PrizeDistribution",
    "PrizeSlot",
    "PrizeTable",
    "RandomSource",
    "RemainderRange",
    "SeededRandomSource",
    "SelectedWinner",
    "SequenceRandomSource",
    "SystemRandomSource",
    "WeekSchedule",
    "WeeklyAllocation",
    "add_months",
    "allocate",
    "build_prize_distribution",
    "can_participant_enter",
    "compute_excluded_until",
    "compute_prize_table",
    "count_excluded",
    "default_monthly_name",
    "default_weekly_fund_pct",
    "default_weekly_name",
    "describe_exclusion_period",
    "draw_dates_in_month",
    "eligible",
    "single_prize_table",
    "validate_participant_distribution",
    "validate_weekly_fund_pct",
    "week_count",
    "week_schedule",
]
