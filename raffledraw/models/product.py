"""Single-winner raffles for a physical or digital product."""

from __future__ import annotations

import enum
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
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base
from .types import ID_TYPE, MONEY
from ..db.utils import decimal_str, dt_iso

if TYPE_CHECKING:
    from .participant import RaffleParticipant
    from .winner import RaffleWinner


class ProductRaffleStatus(str, enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    FINISHED = "finished"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


product_raffle_entries = Table(
    "product_raffle_entries",
    Base.metadata,
    Column(
        "product_raffle_id",
        ForeignKey("product_raffles.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "participant_id",
        ID_TYPE,
        ForeignKey("raffle_participants.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class ProductRaffle(Base):
    """A raffle whose single winner receives a product instead of cash."""

    __tablename__ = "product_raffles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    product: Mapped[str] = mapped_column(String(255), nullable=False)
    product_value: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    points_required: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_participants: Mapped[int] = mapped_column(Integer, nullable=False)
    draw_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ProductRaffleStatus.PENDING.value
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

    entries: Mapped[list["RaffleParticipant"]] = relationship(
        secondary=product_raffle_entries,
        order_by="RaffleParticipant.id",
    )
    winners: Mapped[list["RaffleWinner"]] = relationship(
        back_populates="product_raffle",
        cascade="all, delete-orphan",
        order_by="RaffleWinner.position",
    )

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return (
            f"<ProductRaffle(id={self.id}, name='{self.name}', "
            f"product='{self.product}', status={self.status})>"
        )

    @property
    def winner(self) -> Optional["RaffleWinner"]:
        return self.winners[0] if self.winners else None

    def to_json(self) -> dict[str, Any]:
        winner = self.winner
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "product": self.product,
            "product_value": decimal_str(self.product_value),
            "points_required": self.points_required,
            "max_participants": self.max_participants,
            "current_participants": len(self.entries),
            "draw_date": dt_iso(self.draw_date),
            "status": self.status,
            "is_drawn": self.is_drawn,
            "drawn_at": dt_iso(self.drawn_at),
            "winner": winner.to_json() if winner is not None else None,
        }
