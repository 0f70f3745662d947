"""Monthly raffles and the weekly raffles they are split into."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
    select,
)
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from .base import Base
from .types import ID_TYPE, MONEY, PERCENT
from ..db.utils import decimal_str, dt_iso
from ..engine.eligibility import ExclusionPeriod, ExclusionPolicy
from ..engine.prizes import PrizeTable, compute_prize_table

if TYPE_CHECKING:
    from .participant import RaffleParticipant
    from .winner import RaffleWinner


weekly_raffle_entries = Table(
    "weekly_raffle_entries",
    Base.metadata,
    Column(
        "weekly_raffle_id",
        ForeignKey("weekly_raffles.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "participant_id",
        ID_TYPE,
        ForeignKey("raffle_participants.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)
"""Participants registered for a weekly raffle."""

weekly_raffle_exclusions = Table(
    "weekly_raffle_exclusions",
    Base.metadata,
    Column(
        "weekly_raffle_id",
        ForeignKey("weekly_raffles.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "participant_id",
        ID_TYPE,
        ForeignKey("raffle_participants.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)
"""Participants explicitly barred from a weekly raffle, independent of time."""


class MonthlyRaffle(Base):
    """Fund and participant pool configured for one calendar month."""

    def __init__(
        self,
        *,
        name: str,
        year: int,
        month: int,
        total_fund: Decimal,
        total_participants: int = 0,
        exclusion_policy: Optional[ExclusionPolicy] = None,
        is_active: bool = True,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ) -> None:
        self.name = name
        self.year = year
        self.month = month
        self.total_fund = total_fund
        self.total_participants = total_participants
        self.exclusion_policy = exclusion_policy or ExclusionPolicy()
        self.is_active = is_active
        if created_at is not None:
            self.created_at = created_at
        if updated_at is not None:
            self.updated_at = updated_at

    __tablename__ = "monthly_raffles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    total_fund: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    total_participants: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    exclusion_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    exclusion_period: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ExclusionPeriod.NEXT_MONTH.value
    )
    exclusion_custom_period: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    weeks: Mapped[list["MonthlyRaffleWeek"]] = relationship(
        back_populates="monthly_raffle",
        cascade="all, delete-orphan",
        order_by="MonthlyRaffleWeek.week",
    )
    weekly_raffles: Mapped[list["WeeklyRaffle"]] = relationship(
        back_populates="monthly_raffle",
        cascade="all, delete-orphan",
        order_by="WeeklyRaffle.week",
    )

    __table_args__ = (UniqueConstraint("name", name="monthly_raffles_name_key"),)

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return (
            f"<MonthlyRaffle(id={self.id}, name='{self.name}', "
            f"{self.year}-{self.month:02d}, total_fund={self.total_fund})>"
        )

    @property
    def exclusion_policy(self) -> ExclusionPolicy:
        return ExclusionPolicy(
            enabled=bool(self.exclusion_enabled),
            period=ExclusionPeriod(self.exclusion_period),
            custom_period=self.exclusion_custom_period,
        )

    @exclusion_policy.setter
    def exclusion_policy(self, policy: ExclusionPolicy) -> None:
        self.exclusion_enabled = policy.enabled
        self.exclusion_period = policy.period.value
        self.exclusion_custom_period = policy.custom_period

    @property
    def weekly_fund_pct(self) -> dict[int, Decimal]:
        return {w.week: w.fund_pct for w in self.weeks}

    @property
    def participant_distribution(self) -> dict[int, int]:
        return {w.week: w.participants for w in self.weeks}

    def week(self, week: int) -> Optional["MonthlyRaffleWeek"]:
        for entry in self.weeks:
            if entry.week == week:
                return entry
        return None

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "year": self.year,
            "month": self.month,
            "total_fund": decimal_str(self.total_fund),
            "total_participants": self.total_participants,
            "weekly_fund_pct": {
                str(w.week): decimal_str(w.fund_pct) for w in self.weeks
            },
            "participant_distribution": {
                str(w.week): w.participants for w in self.weeks
            },
            "exclusion_policy": self.exclusion_policy.to_json(),
            "is_active": self.is_active,
            "created_at": dt_iso(self.created_at),
            "updated_at": dt_iso(self.updated_at),
        }

    @classmethod
    def get_by_name(cls, session: Session, name: str) -> Optional["MonthlyRaffle"]:
        return session.scalar(select(cls).where(cls.name == name))


class MonthlyRaffleWeek(Base):
    """Fund share and participant allocation of one week of a monthly raffle."""

    __tablename__ = "monthly_raffle_weeks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    monthly_raffle_id: Mapped[int] = mapped_column(
        ForeignKey("monthly_raffles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    week: Mapped[int] = mapped_column(Integer, nullable=False)
    fund_pct: Mapped[Decimal] = mapped_column(PERCENT, nullable=False)
    fund: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    participants: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    monthly_raffle: Mapped["MonthlyRaffle"] = relationship(back_populates="weeks")

    __table_args__ = (
        UniqueConstraint(
            "monthly_raffle_id", "week", name="monthly_raffle_weeks_raffle_week_key"
        ),
    )


class WeeklyRaffle(Base):
    """One drawable week with its own fund, participant cap and prize rules."""

    __tablename__ = "weekly_raffles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    monthly_raffle_id: Mapped[int] = mapped_column(
        ForeignKey("monthly_raffles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    week: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    fund: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    max_participants: Mapped[int] = mapped_column(Integer, nullable=False)
    winners_count: Mapped[int] = mapped_column(Integer, nullable=False)
    first_pct: Mapped[Decimal] = mapped_column(PERCENT, nullable=False)
    second_pct: Mapped[Decimal] = mapped_column(PERCENT, nullable=False)
    third_pct: Mapped[Decimal] = mapped_column(PERCENT, nullable=False)
    points_required: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    draw_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    registration_start: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    registration_end: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_registration_open: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    is_drawn: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    drawn_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    monthly_raffle: Mapped["MonthlyRaffle"] = relationship(back_populates="weekly_raffles")
    entries: Mapped[list["RaffleParticipant"]] = relationship(
        secondary=weekly_raffle_entries,
        order_by="RaffleParticipant.id",
    )
    excluded_participants: Mapped[list["RaffleParticipant"]] = relationship(
        secondary=weekly_raffle_exclusions,
        order_by="RaffleParticipant.id",
    )
    winners: Mapped[list["RaffleWinner"]] = relationship(
        back_populates="weekly_raffle",
        cascade="all, delete-orphan",
        order_by="RaffleWinner.position",
    )

    __table_args__ = (
        UniqueConstraint(
            "monthly_raffle_id", "week", name="weekly_raffles_monthly_week_key"
        ),
    )

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return (
            f"<WeeklyRaffle(id={self.id}, name='{self.name}', week={self.week}, "
            f"fund={self.fund}, winners_count={self.winners_count}, "
            f"is_drawn={self.is_drawn})>"
        )

    @property
    def exclusion_list(self) -> list[int]:
        return [participant.id for participant in self.excluded_participants]

    @property
    def current_participants(self) -> int:
        return len(self.entries)

    def prize_table(self) -> PrizeTable:
        """Prize table derived from the stored prize rules."""

        return compute_prize_table(
            self.winners_count, self.first_pct, self.second_pct, self.third_pct
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "monthly_raffle_id": self.monthly_raffle_id,
            "week": self.week,
            "name": self.name,
            "description": self.description,
            "fund": decimal_str(self.fund),
            "max_participants": self.max_participants,
            "current_participants": self.current_participants,
            "winners_count": self.winners_count,
            "points_required": self.points_required,
            "prize_table": self.prize_table().to_json(self.fund),
            "draw_date": dt_iso(self.draw_date),
            "registration_start": dt_iso(self.registration_start),
            "registration_end": dt_iso(self.registration_end),
            "is_active": self.is_active,
            "is_registration_open": self.is_registration_open,
            "is_drawn": self.is_drawn,
            "drawn_at": dt_iso(self.drawn_at),
            "winners": [winner.to_json() for winner in self.winners],
        }
