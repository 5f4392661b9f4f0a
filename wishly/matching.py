from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Sequence


logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 10_000


class MatchingError(RuntimeError):
    pass


class InsufficientParticipants(MatchingError):
    pass


class InvalidInput(MatchingError):
    pass


class InternalFailure(MatchingError):
    pass


@dataclass(frozen=True)
class Participant:
    id: str
    name: str = field(default="", compare=False)


@dataclass(frozen=True)
class Assignment:
    giver_id: str
    receiver_id: str


def shuffle(items: list, rng) -> None:
    """Fisher-Yates, in place."""
    for i in range(len(items) - 1, 0, -1):
        j = rng.randint(0, i)
        items[i], items[j] = items[j], items[i]


def _validate(participants: Sequence[Participant]) -> None:
    if len(participants) < 2:
        raise InsufficientParticipants("Need at least 2 participants to match.")

    seen: set[str] = set()
    for p in participants:
        if not p.id or not str(p.id).strip():
            raise InvalidInput("Participant identifiers must not be empty.")
        if p.id in seen:
            raise InvalidInput(f"Duplicate participant identifier: {p.id!r}")
        seen.add(p.id)


def assign(
    participants: Sequence[Participant],
    rng=None,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
) -> list[Assignment]:
    """
    Returns one giver -> receiver pair per participant, drawn uniformly from
    all derangements of the input.

    Shuffles a copy of the participants and rejects any shuffle that leaves
    someone in their own slot. The expected number of shuffles tends to e.
    """
    _validate(participants)
    rng = rng or random.SystemRandom()

    working = list(participants)
    for attempt in range(1, max_attempts + 1):
        shuffle(working, rng)
        if all(w.id != p.id for w, p in zip(working, participants)):
            logger.debug("Derangement of %d participants found after %d shuffles", len(participants), attempt)
            return [Assignment(giver_id=p.id, receiver_id=w.id) for p, w in zip(participants, working)]

    raise InternalFailure(f"No derangement found after {max_attempts} shuffles.")


def is_derangement(participants: Sequence[Participant], assignments: Sequence[Assignment]) -> bool:
    ids = {p.id for p in participants}
    givers = [a.giver_id for a in assignments]
    receivers = [a.receiver_id for a in assignments]
    return (
        len(assignments) == len(ids)
        and set(givers) == ids
        and set(receivers) == ids
        and len(set(givers)) == len(givers)
        and len(set(receivers)) == len(receivers)
        and all(a.giver_id != a.receiver_id for a in assignments)
    )
