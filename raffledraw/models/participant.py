"""Participants that can enter weekly and product raffles."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import Boolean, DateTime, String, select
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from .base import Base
from .types import ID_TYPE
from ..db.utils import dt_iso
from ..engine.eligibility import (
    ExclusionReason,
    ExclusionStatus,
    Participant,
    as_utc,
)

if TYPE_CHECKING:
    from .winner import RaffleWinner


class RaffleParticipant(Base):
    """A user who can enter raffles, with their current exclusion status."""

    def __init__(
        self,
        external_id: str,
        name: str,
        email: Optional[str] = None,
        is_excluded: bool = False,
        excluded_until: Optional[datetime] = None,
        exclusion_reason: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ):
        """Create a new :class:`RaffleParticipant` record.

        Parameters
        ----------
        external_id : str
            Identifier of the user in the calling application.
        name : str
            Display name shown on draw screens.
        email : str, optional
            Contact address used when paying out prizes.
        is_excluded : bool, default: False
            Whether an exclusion is currently recorded.
        excluded_until : datetime, optional
            End of the exclusion window.
        exclusion_reason : str, optional
            One of ``"winner"``, ``"manual"`` or ``"suspension"``.
        created_at : datetime, optional
            Explicit creation timestamp.
        """

        self.external_id = external_id
        self.name = name
        self.email = email
        self.is_excluded = is_excluded
        self.excluded_until = excluded_until
        if exclusion_reason is not None:
            self.exclusion_reason = ExclusionReason(exclusion_reason).value
        if created_at is not None:
            self.created_at = created_at

    __tablename__ = "raffle_participants"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    external_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    is_excluded: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    excluded_until: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    exclusion_reason: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    # relationships
    wins: Mapped[list["RaffleWinner"]] = relationship(back_populates="participant")

    def __repr__(self) -> str:
        return (
            f"<RaffleParticipant(id={self.id}, external_id='{self.external_id}', "
            f"name='{self.name}', is_excluded={self.is_excluded}, "
            f"excluded_until='{self.excluded_until}')>"
        )

    @classmethod
    def get_by_external_id(
        cls, session: Session, external_id: str
    ) -> Optional["RaffleParticipant"]:
        """Retrieve a participant by their application user id."""

        return session.scalar(select(cls).where(cls.external_id == external_id))

    @property
    def exclusion_status(self) -> ExclusionStatus:
        return ExclusionStatus(
            is_excluded=bool(self.is_excluded),
            excluded_until=(
                as_utc(self.excluded_until) if self.excluded_until is not None else None
            ),
            reason=(
                ExclusionReason(self.exclusion_reason)
                if self.exclusion_reason is not None
                else None
            ),
        )

    def apply_exclusion_status(self, status: ExclusionStatus) -> None:
        """Copy an engine exclusion status onto the row."""

        self.is_excluded = status.is_excluded
        self.excluded_until = status.excluded_until
        self.exclusion_reason = status.reason.value if status.reason is not None else None

    def to_participant(self) -> Participant:
        """Return the engine view of this row, keyed by the primary key."""

        if self.id is None:
            raise ValueError("Participant must be persisted before entering a draw")
        return Participant(
            id=self.id,
            name=self.name,
            email=self.email,
            exclusion_status=self.exclusion_status,
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "external_id": self.external_id,
            "name": self.name,
            "email": self.email,
            "exclusion_status": {
                "is_excluded": bool(self.is_excluded),
                "excluded_until": dt_iso(self.excluded_until),
                "reason": self.exclusion_reason,
            },
        }
