"""Position-by-position winner selection for a single raffle draw."""

from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Hashable, Iterable, Optional

from .allocation import Number, to_decimal
from .eligibility import ExclusionPolicy, Participant, winner_exclusion_status
from .prizes import PrizeTable
from .randomness import RandomSource, SystemRandomSource
from ..errors import ConfigurationError, DrawStateError, NoParticipantsError

logger = logging.getLogger(__name__)


class DrawStatus(str, enum.Enum):
    PREPARATION = "preparation"
    DRAWING = "drawing"
    COMPLETE = "complete"


@dataclass(frozen=True)
class SelectedWinner:
    """A participant committed to a position, before prizes are attached."""

    position: int
    participant: Participant

    @property
    def participant_id(self) -> Hashable:
        return self.participant.id


@dataclass(frozen=True)
class DrawnWinner:
    """Final winner record produced when a draw completes.

    Attributes
    ----------
    position : int
        Prize position, starting at 1.
    participant_id : Hashable
        Identifier of the winning participant.
    name : str
        Participant name at draw time.
    prize_percentage : Decimal
        Percentage of the raffle fund awarded to ``position``.
    prize_amount : Decimal
        ``fund * prize_percentage / 100``; not rounded.
    excluded_until : Optional[datetime]
        End of the winner's exclusion window, when exclusion applies.
    """

    position: int
    participant_id: Hashable
    name: str
    prize_percentage: Decimal
    prize_amount: Decimal
    excluded_until: Optional[datetime] = None

    def to_json(self) -> dict[str, Any]:
        return {
            "position": self.position,
            "participant_id": self.participant_id,
            "name": self.name,
            "prize_percentage": str(self.prize_percentage),
            "prize_amount": str(self.prize_amount),
            "excluded_until": (
                self.excluded_until.isoformat() if self.excluded_until else None
            ),
        }


@dataclass(frozen=True)
class DrawResult:
    """Outcome of a completed draw.

    A result with fewer winners than requested is valid; it means the
    eligible pool ran out first (see :attr:`is_partial`).
    """

    winners: tuple[DrawnWinner, ...]
    requested_winners: int
    draw_timestamp: datetime

    @property
    def is_partial(self) -> bool:
        return len(self.winners) < self.requested_winners

    @property
    def total_amount(self) -> Decimal:
        return sum((w.prize_amount for w in self.winners), Decimal(0))

    def to_json(self) -> dict[str, Any]:
        return {
            "winners": [winner.to_json() for winner in self.winners],
            "requested_winners": self.requested_winners,
            "is_partial": self.is_partial,
            "draw_timestamp": self.draw_timestamp.isoformat(),
        }


class DrawSession:
    """State machine that resolves prize positions one at a time.

    ``preparation -> drawing(1) -> ... -> drawing(k) -> complete``

    Every call to :meth:`draw_position` commits exactly one participant,
    chosen uniformly from those not selected yet. The session moves to
    ``complete`` after the last position or as soon as the pool is empty.
    :meth:`complete` then attaches prizes and exclusion windows; calling it
    again returns the same :class:`DrawResult`. Only :meth:`reset` makes the
    session usable again.

    A session is driven by one caller at a time. Independent sessions share
    no state.
    """

    def __init__(self, random_source: Optional[RandomSource] = None) -> None:
        self._random = random_source or SystemRandomSource()
        self._lock = threading.Lock()
        self._clear()

    def _clear(self) -> None:
        self.status = DrawStatus.PREPARATION
        self.current_position = 0
        self.winners_count = 0
        self._selected: list[SelectedWinner] = []
        self._remaining: list[Participant] = []
        self._result: Optional[DrawResult] = None

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return (
            f"<DrawSession(status={self.status.value}, "
            f"position={self.current_position}/{self.winners_count}, "
            f"remaining={len(self._remaining)})>"
        )

    @property
    def selected_winners(self) -> list[SelectedWinner]:
        return list(self._selected)

    @property
    def remaining_pool(self) -> list[Participant]:
        return list(self._remaining)

    @property
    def result(self) -> Optional[DrawResult]:
        return self._result

    def start(self, eligible_pool: Iterable[Participant], winners_count: int) -> None:
        """Load the eligible pool and move to ``drawing(1)``.

        Participants sharing an id are only entered once.

        Raises
        ------
        DrawStateError
            If the session is not in ``preparation``.
        ConfigurationError
            If ``winners_count`` is below 1.
        NoParticipantsError
            If the pool is empty.
        """

        if self.status is not DrawStatus.PREPARATION:
            raise DrawStateError(
                f"cannot start a draw while the session is in '{self.status.value}'"
            )
        if winners_count < 1:
            raise ConfigurationError(f"winners_count must be at least 1, got {winners_count}")

        pool: list[Participant] = []
        seen: set[Hashable] = set()
        for participant in eligible_pool:
            if participant.id in seen:
                continue
            seen.add(participant.id)
            pool.append(participant)
        if not pool:
            raise NoParticipantsError("the eligible pool is empty")

        self.winners_count = winners_count
        self._remaining = pool
        self.current_position = 1
        self.status = DrawStatus.DRAWING
        logger.info(
            f"Draw started: {winners_count} positions, {len(pool)} eligible participants"
        )

    def draw_position(self, position: Optional[int] = None) -> SelectedWinner:
        """Commit a random participant to the current position.

        Parameters
        ----------
        position : Optional[int], default: None
            Position the caller expects to resolve. Must match
            :attr:`current_position` when given.

        Returns
        -------
        SelectedWinner
            The participant committed to the position.
        """

        if not self._lock.acquire(blocking=False):
            raise DrawStateError("another position of this draw is being resolved")
        try:
            if self.status is not DrawStatus.DRAWING:
                raise DrawStateError(
                    f"cannot draw a position while the session is in '{self.status.value}'"
                )
            if position is not None and position != self.current_position:
                raise DrawStateError(
                    f"position {self.current_position} is being drawn, not {position}"
                )
            if not self._remaining:
                raise DrawStateError("no participants are left to draw from")

            index = self._random.pick(len(self._remaining))
            if not 0 <= index < len(self._remaining):
                raise DrawStateError(f"random source returned out-of-range index {index}")
            participant = self._remaining.pop(index)
            selected = SelectedWinner(position=self.current_position, participant=participant)
            self._selected.append(selected)
            logger.debug(f"Position {selected.position} -> participant {participant.id}")

            if self.current_position < self.winners_count and self._remaining:
                self.current_position += 1
            else:
                self.status = DrawStatus.COMPLETE
                if len(self._selected) < self.winners_count:
                    logger.warning(
                        f"Eligible pool exhausted after {len(self._selected)} of "
                        f"{self.winners_count} positions"
                    )
            return selected
        finally:
            self._lock.release()

    def draw_all(self) -> list[SelectedWinner]:
        """Resolve every remaining position and return all selections."""

        while self.status is DrawStatus.DRAWING:
            self.draw_position()
        return self.selected_winners

    def complete(
        self,
        prize_table: PrizeTable,
        fund: Number,
        *,
        exclusion_policy: Optional[ExclusionPolicy] = None,
        draw_date: Optional[datetime] = None,
    ) -> DrawResult:
        """Attach prizes to the selected winners and apply exclusion windows.

        The first call computes the :class:`DrawResult` and, when
        ``exclusion_policy.enabled`` is true, replaces each winner's
        ``exclusion_status``. Later calls return that same result untouched
        until :meth:`reset` is called.

        Raises
        ------
        DrawStateError
            If the session has not reached ``complete``.
        ConfigurationError
            If the prize table has no entry for a selected position.
        """

        if self._result is not None:
            return self._result
        if self.status is not DrawStatus.COMPLETE:
            raise DrawStateError(
                f"cannot complete a draw while the session is in '{self.status.value}'"
            )

        drawn_at = draw_date or datetime.now(timezone.utc)
        amount_fund = to_decimal(fund)

        winners: list[DrawnWinner] = []
        for selected in self._selected:
            try:
                percent = prize_table.percent(selected.position)
            except KeyError as exc:
                raise ConfigurationError(str(exc)) from exc
            winners.append(
                DrawnWinner(
                    position=selected.position,
                    participant_id=selected.participant.id,
                    name=selected.participant.name,
                    prize_percentage=percent,
                    prize_amount=amount_fund * percent / 100,
                )
            )

        # Only touch participants once every position has a prize.
        if exclusion_policy is not None and exclusion_policy.enabled:
            status = winner_exclusion_status(exclusion_policy, drawn_at)
            for index, selected in enumerate(self._selected):
                selected.participant.exclusion_status = status
                winners[index] = replace(winners[index], excluded_until=status.excluded_until)

        self._result = DrawResult(
            winners=tuple(winners),
            requested_winners=self.winners_count,
            draw_timestamp=drawn_at,
        )
        logger.info(
            f"Draw complete: {len(winners)}/{self.winners_count} winners, "
            f"total prize {self._result.total_amount}"
        )
        return self._result

    def reset(self) -> None:
        """Discard all progress and return to ``preparation``.

        Safe from any state. Results already returned by :meth:`complete`
        are not affected.

        Raises
        ------
        DrawStateError
            If a position is being resolved at the same time.
        """

        if not self._lock.acquire(blocking=False):
            raise DrawStateError("cannot reset while a position is being resolved")
        try:
            self._clear()
        finally:
            self._lock.release()

    def to_dict(self) -> dict[str, Any]:
        """Plain, JSON-compatible snapshot of the session for presenters."""

        return {
            "status": self.status.value,
            "current_position": self.current_position,
            "winners_count": self.winners_count,
            "selected_winners": [
                {
                    "position": s.position,
                    "participant_id": s.participant.id,
                    "name": s.participant.name,
                }
                for s in self._selected
            ],
            "remaining_pool": [p.id for p in self._remaining],
        }

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        participants: Iterable[Participant],
        random_source: Optional[RandomSource] = None,
    ) -> "DrawSession":
        """Rebuild a session from :meth:`to_dict` output.

        ``participants`` must contain every id referenced by the snapshot.
        A completed snapshot is restored without its result; call
        :meth:`complete` again to recompute it.

        Raises
        ------
        ValueError
            If the snapshot is incomplete or describes a state the session
            could never reach (a winner still in the pool, gaps in the
            positions, a position counter out of step, or an empty pool in
            ``drawing``).
        """

        by_id = {p.id: p for p in participants}
        session = cls(random_source=random_source)
        try:
            status = DrawStatus(data["status"])
            current_position = int(data["current_position"])
            winners_count = int(data["winners_count"])
            selected = [
                SelectedWinner(
                    position=int(item["position"]),
                    participant=by_id[item["participant_id"]],
                )
                for item in data["selected_winners"]
            ]
            remaining = [by_id[pid] for pid in data["remaining_pool"]]
        except KeyError as exc:
            raise ValueError(f"Incomplete draw session snapshot: missing {exc}") from exc

        _check_snapshot(status, current_position, winners_count, selected, remaining)
        session.status = status
        session.current_position = current_position
        session.winners_count = winners_count
        session._selected = selected
        session._remaining = remaining
        return session


def _check_snapshot(
    status: DrawStatus,
    current_position: int,
    winners_count: int,
    selected: list[SelectedWinner],
    remaining: list[Participant],
) -> None:
    selected_ids = [s.participant_id for s in selected]
    remaining_ids = [p.id for p in remaining]
    if len(set(selected_ids)) != len(selected_ids):
        raise ValueError("snapshot selects the same participant twice")
    if len(set(remaining_ids)) != len(remaining_ids):
        raise ValueError("snapshot lists a participant twice in the remaining pool")
    if set(selected_ids) & set(remaining_ids):
        raise ValueError("snapshot keeps a selected winner in the remaining pool")
    if [s.position for s in selected] != list(range(1, len(selected) + 1)):
        raise ValueError("snapshot positions must run contiguously from 1")
    if len(selected) > winners_count:
        raise ValueError("snapshot selects more winners than positions")

    if status is DrawStatus.PREPARATION:
        if selected or remaining or current_position != 0:
            raise ValueError("a preparation snapshot cannot carry draw progress")
    elif status is DrawStatus.DRAWING:
        if current_position != len(selected) + 1:
            raise ValueError(
                f"drawing snapshot is at position {current_position} after "
                f"{len(selected)} selections"
            )
        if current_position > winners_count:
            raise ValueError("drawing snapshot is past its last position")
        if not remaining:
            raise ValueError("drawing snapshot has an empty remaining pool")
    else:
        if not selected or current_position != len(selected):
            raise ValueError("complete snapshot must end on its last selected position")


__all__ = [
    "DrawResult",
    "DrawSession",
    "DrawStatus",
    "DrawnWinner",
    "SelectedWinner",
]
