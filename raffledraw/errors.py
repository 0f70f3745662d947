"""Exception hierarchy shared by the raffle engine and the raffle store."""

from __future__ import annotations


class RaffleError(Exception):
    """Base class for every error raised by :mod:`raffledraw`."""


class ConfigurationError(RaffleError, ValueError):
    """Fund, percentage or prize invariants are violated.

    Raised before any draw starts. The caller must correct the configuration;
    retrying with the same input always fails again.
    """


class InvalidWeeklyDistributionError(ConfigurationError):
    """Weekly fund percentages or participant counts do not add up."""


class PrizePoolExceededError(ConfigurationError):
    """The top-3 percentages add up to more than 100."""


class NoRemainderForExtraWinnersError(ConfigurationError):
    """More than three winners were requested but nothing is left for them."""


class NoActiveWeeksError(RaffleError, ValueError):
    """Participants must be allocated but no week receives any fund."""


class NoParticipantsError(RaffleError, ValueError):
    """A draw was started with an empty eligible pool."""


class DrawStateError(RaffleError, RuntimeError):
    """An operation is not allowed in the draw session's current state."""


__all__ = [
    "ConfigurationError",
    "DrawStateError",
    "InvalidWeeklyDistributionError",
    "NoActiveWeeksError",
    "NoParticipantsError",
    "NoRemainderForExtraWinnersError",
    "PrizePoolExceededError",
    "RaffleError",
]
