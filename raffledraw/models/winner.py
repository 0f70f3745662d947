"""Persisted raffle winners and their prize payment state."""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base
from .types import ID_TYPE, MONEY, PERCENT
from ..db.utils import decimal_str, dt_iso

if TYPE_CHECKING:
    from .participant import RaffleParticipant
    from .product import ProductRaffle
    from .raffle import WeeklyRaffle


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    VERIFYING = "verifying"
    PROCESSING = "processing"
    COMPLETED = "completed"
    REJECTED = "rejected"
    REFUNDED = "refunded"


class PaymentMethod(str, enum.Enum):
    WHATSAPP = "whatsapp"
    BANK_TRANSFER = "bank_transfer"
    CRYPTO = "crypto"
    GIFT_CARD = "gift_card"
    POINTS = "points"


class RaffleWinner(Base):
    """A participant awarded a prize position in a weekly or product raffle."""

    __tablename__ = "raffle_winners"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    """Primary key."""

    weekly_raffle_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("weekly_raffles.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    """Weekly raffle that produced this winner, if any."""

    product_raffle_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("product_raffles.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    """Product raffle that produced this winner, if any."""

    participant_id: Mapped[int] = mapped_column(
        ID_TYPE,
        ForeignKey("raffle_participants.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    """Winning participant."""

    position: Mapped[int] = mapped_column(Integer, nullable=False)
    """Prize position, starting at 1."""

    prize_percentage: Mapped[Decimal] = mapped_column(PERCENT, nullable=False)
    """Percentage of the raffle fund awarded to the position."""

    prize_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    """Amount awarded, derived from ``prize_percentage`` and the raffle fund."""

    special_prize: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    """Non-cash prize, e.g. the product of a product raffle."""

    drawn_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    """Timestamp of the draw that selected this winner."""

    payment_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PaymentStatus.PENDING.value
    )
    """Current payout state; see :class:`PaymentStatus`."""

    payment_method: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    """How the prize is paid out; see :class:`PaymentMethod`."""

    payment_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    """When the payout was completed."""

    weekly_raffle: Mapped[Optional["WeeklyRaffle"]] = relationship(back_populates="winners")
    product_raffle: Mapped[Optional["ProductRaffle"]] = relationship(
        back_populates="winners"
    )
    participant: Mapped["RaffleParticipant"] = relationship(back_populates="wins")

    __table_args__ = (
        UniqueConstraint(
            "weekly_raffle_id", "position", name="raffle_winners_weekly_position_key"
        ),
        UniqueConstraint(
            "product_raffle_id", "position", name="raffle_winners_product_position_key"
        ),
        CheckConstraint(
            "(weekly_raffle_id IS NULL) <> (product_raffle_id IS NULL)",
            name="one_raffle",
        ),
    )

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return (
            f"<RaffleWinner(id={self.id}, position={self.position}, "
            f"participant_id={self.participant_id}, prize_amount={self.prize_amount}, "
            f"payment_status={self.payment_status})>"
        )

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.COMPLETED.value

    def to_json(self) -> dict[str, Any]:
        participant = self.participant
        return {
            "id": self.id,
            "position": self.position,
            "participant_id": self.participant_id,
            "name": participant.name if participant is not None else None,
            "email": participant.email if participant is not None else None,
            "prize_percentage": decimal_str(self.prize_percentage),
            "prize_amount": decimal_str(self.prize_amount),
            "special_prize": self.special_prize,
            "drawn_at": dt_iso(self.drawn_at),
            "payment_status": self.payment_status,
            "payment_method": self.payment_method,
            "payment_date": dt_iso(self.payment_date),
            "is_paid": self.is_paid,
        }
