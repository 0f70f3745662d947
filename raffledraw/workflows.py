from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, Mapping, Optional, Sequence, Union

from sqlalchemy import select
from sqlalchemy.orm import Session

from .engine.allocation import (
    Number,
    allocate,
    default_weekly_fund_pct,
    to_decimal,
    validate_participant_distribution,
    validate_weekly_fund_pct,
)
from .engine.eligibility import ExclusionPolicy, Participant, eligible
from .engine.prizes import build_prize_distribution, single_prize_table
from .engine.randomness import RandomSource
from .engine.schedule import (
    default_monthly_name,
    default_weekly_name,
    week_count,
    week_schedule,
)
from .engine.session import DrawResult, DrawSession
from .errors import ConfigurationError
from .models import (
    MonthlyRaffle,
    MonthlyRaffleWeek,
    PaymentMethod,
    PaymentStatus,
    ProductRaffle,
    ProductRaffleStatus,
    RaffleParticipant,
    RaffleWinner,
    WeeklyRaffle,
)

logger = logging.getLogger(__name__)

AnyRaffle = Union[WeeklyRaffle, ProductRaffle]


def configure_monthly_raffle(
    session: Session,
    *,
    year: int,
    month: int,
    total_fund: Number,
    total_participants: int,
    weekly_fund_pct: Optional[Mapping[int, Number]] = None,
    exclusion_policy: Optional[ExclusionPolicy] = None,
    name: Optional[str] = None,
) -> MonthlyRaffle:
    """Create a monthly raffle and allocate its fund and participants per week.

    The number of weeks is the number of draw days (Saturdays) in the month.
    When ``weekly_fund_pct`` is omitted the fund is split evenly, with the
    leftover percentage points going to the first weeks.

    Parameters
    ----------
    session : Session
        Active SQLAlchemy session.
    year, month : int
        Calendar month the raffle covers.
    total_fund : Number
        Monthly prize fund. Must be greater than zero.
    total_participants : int
        Participants to distribute across the weeks that receive a fund.
    weekly_fund_pct : Optional[Mapping[int, Number]], default: None
        Fund percentage per 1-based week. Must sum to exactly 100.
    exclusion_policy : Optional[ExclusionPolicy], default: None
        Winner exclusion settings. Disabled when omitted.
    name : Optional[str], default: None
        Unique raffle name. Defaults to ``"Raffle <Month> <Year>"``.

    Returns
    -------
    MonthlyRaffle
        The flushed monthly raffle with one :class:`MonthlyRaffleWeek` per week.

    Raises
    ------
    ConfigurationError
        If the fund is not positive or the weekly split is invalid.
    NoActiveWeeksError
        If participants are requested but no week has a fund.
    ValueError
        If a monthly raffle with the same name already exists.
    """

    fund = to_decimal(total_fund)
    if fund <= 0:
        raise ConfigurationError("total_fund must be greater than zero")

    weeks_in_month = week_count(year, month)
    pct = validate_weekly_fund_pct(
        weekly_fund_pct if weekly_fund_pct is not None else default_weekly_fund_pct(weeks_in_month),
        weeks_in_month,
    )
    allocations = allocate(fund, total_participants, pct, weeks_in_month)
    validate_participant_distribution(
        {week: a.participants for week, a in allocations.items()},
        total_participants,
        weeks_in_month,
    )

    raffle_name = (name or "").strip() or default_monthly_name(year, month)
    if MonthlyRaffle.get_by_name(session, raffle_name) is not None:
        raise ValueError(f"A monthly raffle named '{raffle_name}' already exists")

    monthly = MonthlyRaffle(
        name=raffle_name,
        year=year,
        month=month,
        total_fund=fund,
        total_participants=total_participants,
        exclusion_policy=exclusion_policy,
    )
    monthly.weeks = [
        MonthlyRaffleWeek(
            week=a.week,
            fund_pct=a.fund_pct,
            fund=a.fund,
            participants=a.participants,
        )
        for a in allocations.values()
    ]
    session.add(monthly)
    session.flush()
    logger.info(
        f"Configured monthly raffle '{raffle_name}' ({year}-{month:02d}): "
        f"fund={fund}, participants={total_participants}, weeks={weeks_in_month}"
    )
    return monthly


def update_weekly_fund_pct(
    session: Session,
    monthly: MonthlyRaffle,
    weekly_fund_pct: Mapping[int, Number],
) -> MonthlyRaffle:
    """Change the weekly fund split and redistribute every week's participants.

    Raises
    ------
    ValueError
        If weekly raffles were already created from this monthly raffle.
    """

    if monthly.weekly_raffles:
        raise ValueError(
            "Weekly raffles already exist for this monthly raffle; "
            "its distribution can no longer change"
        )

    weeks_in_month = week_count(monthly.year, monthly.month)
    pct = validate_weekly_fund_pct(weekly_fund_pct, weeks_in_month)
    allocations = allocate(
        monthly.total_fund, monthly.total_participants, pct, weeks_in_month
    )

    existing = {entry.week: entry for entry in monthly.weeks}
    for week, allocation in allocations.items():
        entry = existing.get(week)
        if entry is None:
            entry = MonthlyRaffleWeek(week=week)
            monthly.weeks.append(entry)
        entry.fund_pct = allocation.fund_pct
        entry.fund = allocation.fund
        entry.participants = allocation.participants
    session.flush()
    logger.info(f"Redistributed monthly raffle '{monthly.name}': {dict(pct)}")
    return monthly


def create_weekly_raffles(
    session: Session,
    monthly: MonthlyRaffle,
    weeks: Iterable[int],
    *,
    winners_count: int,
    first_pct: Number,
    second_pct: Number,
    third_pct: Number,
    points_required: int = 0,
) -> list[WeeklyRaffle]:
    """Create the weekly raffles of ``monthly`` for the given weeks.

    Every week is validated before anything is written, so either all
    requested raffles are created or none are.

    Raises
    ------
    ConfigurationError
        If the prize rules are invalid, a week has no participants, or
        ``winners_count`` exceeds a week's participant allocation.
    ValueError
        If the monthly raffle is not persisted or a week already has a raffle.
    """

    if monthly.id is None:
        raise ValueError("Monthly raffle must be persisted before creating weekly raffles")

    build_prize_distribution(winners_count, first_pct, second_pct, third_pct)

    requested = sorted(set(weeks))
    if not requested:
        raise ValueError("At least one week must be selected")
    existing_weeks = {raffle.week for raffle in monthly.weekly_raffles}

    plan: list[MonthlyRaffleWeek] = []
    for week in requested:
        entry = monthly.week(week)
        if entry is None:
            raise ConfigurationError(
                f"Week {week} has no fund or participant configuration in "
                f"'{monthly.name}'"
            )
        if entry.participants == 0:
            raise ConfigurationError(f"Week {week} has no participants allocated")
        if winners_count > entry.participants:
            raise ConfigurationError(
                f"winners_count ({winners_count}) exceeds the {entry.participants} "
                f"participants allocated to week {week}"
            )
        if week in existing_weeks:
            raise ValueError(f"Week {week} of '{monthly.name}' already has a raffle")
        plan.append(entry)

    created: list[WeeklyRaffle] = []
    for entry in plan:
        schedule = week_schedule(monthly.year, monthly.month, entry.week)
        raffle = WeeklyRaffle(
            week=entry.week,
            name=default_weekly_name(monthly.name, entry.week),
            description=f"Weekly draw {entry.week} of {monthly.name}",
            fund=entry.fund,
            max_participants=entry.participants,
            winners_count=winners_count,
            first_pct=to_decimal(first_pct),
            second_pct=to_decimal(second_pct),
            third_pct=to_decimal(third_pct),
            points_required=points_required,
            draw_date=schedule.draw_date,
            registration_start=schedule.registration_start,
            registration_end=schedule.registration_end,
            is_active=entry.week == 1,
            is_registration_open=entry.week == 1,
            is_drawn=False,
        )
        monthly.weekly_raffles.append(raffle)
        created.append(raffle)

    session.flush()
    logger.info(
        f"Created weekly raffles for weeks {requested} of '{monthly.name}' "
        f"({winners_count} winners each)"
    )
    return created


def update_weekly_raffle_prizes(
    session: Session,
    raffle: WeeklyRaffle,
    *,
    winners_count: int,
    first_pct: Number,
    second_pct: Number,
    third_pct: Number,
) -> WeeklyRaffle:
    """Change the winner count and top-3 percentages of an undrawn raffle.

    Raises
    ------
    ValueError
        If the raffle has already been drawn.
    ConfigurationError
        If the prize rules are invalid or ``winners_count`` exceeds the
        raffle's ``max_participants``.
    """

    if raffle.is_drawn:
        raise ValueError(f"Weekly raffle '{raffle.name}' has already been drawn")

    distribution = build_prize_distribution(winners_count, first_pct, second_pct, third_pct)
    if distribution.winners_count > raffle.max_participants:
        raise ConfigurationError(
            f"winners_count ({distribution.winners_count}) exceeds the "
            f"{raffle.max_participants} participants of '{raffle.name}'"
        )

    raffle.winners_count = distribution.winners_count
    raffle.first_pct = distribution.first_pct
    raffle.second_pct = distribution.second_pct
    raffle.third_pct = distribution.third_pct
    session.flush()
    logger.info(
        f"Updated prizes of '{raffle.name}': {raffle.winners_count} winners, "
        f"top-3 {raffle.first_pct}/{raffle.second_pct}/{raffle.third_pct}"
    )
    return raffle


def enter_raffle(
    session: Session, raffle: AnyRaffle, participant: RaffleParticipant
) -> bool:
    """Register ``participant`` for ``raffle``.

    Returns ``False`` when the participant was already registered.

    Raises
    ------
    ValueError
        If the raffle has been drawn or is full.
    """

    if raffle.is_drawn:
        raise ValueError("Cannot enter a raffle that has already been drawn")
    if participant in raffle.entries:
        return False
    if len(raffle.entries) >= raffle.max_participants:
        raise ValueError(
            f"Raffle '{raffle.name}' is full ({raffle.max_participants} participants)"
        )
    raffle.entries.append(participant)
    session.flush()
    return True


def exclude_from_raffle(
    session: Session, raffle: WeeklyRaffle, participant: RaffleParticipant
) -> None:
    """Put ``participant`` on the raffle's explicit exclusion list."""

    if participant not in raffle.excluded_participants:
        raffle.excluded_participants.append(participant)
        session.flush()


def _now(now: Optional[datetime]) -> datetime:
    return now if now is not None else datetime.now(timezone.utc)


def eligible_participants(
    session: Session,
    raffle: WeeklyRaffle,
    *,
    now: Optional[datetime] = None,
) -> list[Participant]:
    """Return the entrants of ``raffle`` that may win at ``now``."""

    pool = [entry.to_participant() for entry in raffle.entries]
    return eligible(
        pool,
        raffle.exclusion_list,
        raffle.monthly_raffle.exclusion_policy,
        _now(now),
    )


def _persist_winners(
    session: Session,
    result: DrawResult,
    *,
    weekly_raffle: Optional[WeeklyRaffle] = None,
    product_raffle: Optional[ProductRaffle] = None,
    special_prize: Optional[str] = None,
) -> list[RaffleWinner]:
    rows: list[RaffleWinner] = []
    for drawn in result.winners:
        row = RaffleWinner(
            participant_id=drawn.participant_id,
            position=drawn.position,
            prize_percentage=drawn.prize_percentage,
            prize_amount=drawn.prize_amount,
            special_prize=special_prize,
            drawn_at=result.draw_timestamp,
            payment_status=PaymentStatus.PENDING.value,
        )
        if weekly_raffle is not None:
            weekly_raffle.winners.append(row)
        elif product_raffle is not None:
            product_raffle.winners.append(row)
        rows.append(row)
    session.flush()
    return rows


def _apply_winner_exclusions(
    session: Session, draw: DrawSession, raffle: WeeklyRaffle
) -> None:
    """Write the exclusion windows set by the draw back to the participant rows.

    The rows are locked first so that concurrent draws sharing a
    participant cannot interleave their updates.
    """

    statuses = {
        selected.participant_id: selected.participant.exclusion_status
        for selected in draw.selected_winners
    }
    if not statuses:
        return
    rows = session.scalars(
        select(RaffleParticipant)
        .where(RaffleParticipant.id.in_(list(statuses)))
        .with_for_update()
    ).all()
    for row in rows:
        row.apply_exclusion_status(statuses[row.id])
        if row not in raffle.excluded_participants:
            raffle.excluded_participants.append(row)


def run_weekly_draw(
    session: Session,
    raffle: WeeklyRaffle,
    *,
    random_source: Optional[RandomSource] = None,
    now: Optional[datetime] = None,
) -> DrawResult:
    """Draw every prize position of ``raffle`` and persist the winners.

    The workflow performs the following steps:

    1. Build the prize table from the raffle's rules (invalid rules fail here,
       before anything is drawn).
    2. Filter the raffle's entrants through the monthly exclusion policy.
    3. Drive a :class:`DrawSession` through every position.
    4. Store one :class:`RaffleWinner` per resolved position and, when the
       monthly raffle has exclusion enabled, update each winner's exclusion
       window and add them to the raffle's exclusion list.

    Fewer winners than ``raffle.winners_count`` are stored when the eligible
    pool is smaller; check :attr:`DrawResult.is_partial`.

    Raises
    ------
    ValueError
        If the raffle is not persisted or was already drawn.
    ConfigurationError
        If the prize rules are invalid.
    NoParticipantsError
        If nobody is eligible.
    """

    if raffle.id is None:
        raise ValueError("Weekly raffle must be persisted before drawing")
    if raffle.is_drawn:
        raise ValueError(f"Weekly raffle '{raffle.name}' has already been drawn")

    drawn_at = _now(now)
    prize_table = raffle.prize_table()
    policy = raffle.monthly_raffle.exclusion_policy
    pool = eligible_participants(session, raffle, now=drawn_at)
    logger.info(
        f"Drawing weekly raffle '{raffle.name}': {len(pool)} of "
        f"{len(raffle.entries)} entrants eligible"
    )

    draw = DrawSession(random_source=random_source)
    draw.start(pool, raffle.winners_count)
    draw.draw_all()
    result = draw.complete(
        prize_table, raffle.fund, exclusion_policy=policy, draw_date=drawn_at
    )

    _persist_winners(session, result, weekly_raffle=raffle)
    if policy.enabled:
        _apply_winner_exclusions(session, draw, raffle)

    raffle.is_drawn = True
    raffle.drawn_at = result.draw_timestamp
    raffle.is_registration_open = False
    raffle.is_active = False
    session.flush()
    return result


def create_product_raffle(
    session: Session,
    *,
    name: str,
    product: str,
    product_value: Number,
    draw_date: datetime,
    max_participants: int = 100,
    points_required: int = 0,
    description: Optional[str] = None,
) -> ProductRaffle:
    """Create an active single-winner raffle for ``product``.

    Raises
    ------
    ConfigurationError
        If the name or product is blank, ``product_value`` is not positive,
        ``max_participants`` is below 1 or ``points_required`` is negative.
    """

    name = (name or "").strip()
    product = (product or "").strip()
    if not name:
        raise ConfigurationError("Product raffle name is required")
    if not product:
        raise ConfigurationError("Product raffle product is required")
    value = to_decimal(product_value)
    if value <= 0:
        raise ConfigurationError("product_value must be greater than zero")
    if max_participants < 1:
        raise ConfigurationError("max_participants must be at least 1")
    if points_required < 0:
        raise ConfigurationError("points_required cannot be negative")

    raffle = ProductRaffle(
        name=name,
        description=description,
        product=product,
        product_value=value,
        points_required=points_required,
        max_participants=max_participants,
        draw_date=draw_date,
        status=ProductRaffleStatus.ACTIVE.value,
        is_drawn=False,
    )
    session.add(raffle)
    session.flush()
    logger.info(f"Created product raffle '{name}' for {product} ({value})")
    return raffle


def run_product_draw(
    session: Session,
    raffle: ProductRaffle,
    *,
    random_source: Optional[RandomSource] = None,
    now: Optional[datetime] = None,
) -> DrawResult:
    """Pick the single winner of a product raffle and persist it.

    Every entrant takes part; product raffles have no exclusion policy.
    """

    if raffle.id is None:
        raise ValueError("Product raffle must be persisted before drawing")
    if raffle.is_drawn:
        raise ValueError(f"Product raffle '{raffle.name}' has already been drawn")

    pool = [entry.to_participant() for entry in raffle.entries]
    draw = DrawSession(random_source=random_source)
    draw.start(pool, 1)
    draw.draw_all()
    result = draw.complete(single_prize_table(), raffle.product_value, draw_date=_now(now))

    _persist_winners(session, result, product_raffle=raffle, special_prize=raffle.product)
    raffle.is_drawn = True
    raffle.drawn_at = result.draw_timestamp
    raffle.status = ProductRaffleStatus.FINISHED.value
    session.flush()
    logger.info(f"Product raffle '{raffle.name}' drawn from {len(pool)} entrants")
    return result


def update_winner_payment(
    session: Session,
    winner: RaffleWinner,
    status: Union[PaymentStatus, str],
    method: Optional[Union[PaymentMethod, str]] = None,
    *,
    now: Optional[datetime] = None,
) -> RaffleWinner:
    """Move a winner's payout to ``status``.

    Completing a payment stamps ``payment_date``.

    Raises
    ------
    ValueError
        If ``status`` or ``method`` is not a known value.
    """

    new_status = PaymentStatus(status)
    if method is not None:
        winner.payment_method = PaymentMethod(method).value
    winner.payment_status = new_status.value
    if new_status is PaymentStatus.COMPLETED:
        winner.payment_date = _now(now)
    session.flush()
    logger.info(
        f"Winner {winner.id} (position {winner.position}) payment -> {new_status.value}"
    )
    return winner


@dataclass(frozen=True)
class PaymentSummary:
    winners: int
    paid: int
    total_prize: Decimal
    total_paid: Decimal

    @property
    def pending(self) -> int:
        return self.winners - self.paid


def payment_summary(raffle: AnyRaffle) -> PaymentSummary:
    """Summarise how much of a raffle's prize money has been paid out."""

    winners: Sequence[RaffleWinner] = raffle.winners
    paid = [w for w in winners if w.is_paid]
    return PaymentSummary(
        winners=len(winners),
        paid=len(paid),
        total_prize=sum((to_decimal(w.prize_amount) for w in winners), Decimal(0)),
        total_paid=sum((to_decimal(w.prize_amount) for w in paid), Decimal(0)),
    )


__all__ = [
    "PaymentSummary",
    "configure_monthly_raffle",
    "create_product_raffle",
    "create_weekly_raffles",
    "eligible_participants",
    "enter_raffle",
    "exclude_from_raffle",
    "payment_summary",
    "run_product_draw",
    "run_weekly_draw",
    "update_weekly_fund_pct",
    "update_weekly_raffle_prizes",
    "update_winner_payment",
]
