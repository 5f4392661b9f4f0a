from __future__ import annotations

import logging
from datetime import datetime

from flask import current_app

from ..errors import Conflict, WishlyError
from ..extensions import db
from ..matching import DEFAULT_MAX_ATTEMPTS, Assignment, assign, is_derangement
from ..models import Occasion, OccasionMember, SantaAssignment
from ..security import CipherError, decrypt_receiver, encrypt_receiver
from .occasions import participants_for


logger = logging.getLogger(__name__)


class AssignmentError(WishlyError):
    status_code = 500


class AssignmentConflict(Conflict):
    pass


def _claim_matched_flag(occasion_id: int) -> bool:
    """Sets is_matched only if it is still unset. Returns whether this call won."""
    rows = (
        Occasion.query.filter_by(id=occasion_id, is_matched=False)
        .update({"is_matched": True, "matched_at": datetime.utcnow()}, synchronize_session=False)
    )
    return rows == 1


def run_matching(occasion: Occasion, rng=None) -> list[Assignment]:
    """
    Draws Secret Santa pairs for every current member and stores them.

    Engine errors propagate before anything is written, so a failed draw
    never leaves the occasion marked as matched.
    """
    if occasion.is_matched:
        raise AssignmentConflict("Secret Santas have already been matched for this occasion.")

    participants = participants_for(occasion)
    max_attempts = current_app.config.get("MATCH_MAX_ATTEMPTS") or DEFAULT_MAX_ATTEMPTS
    pairs = assign(participants, rng=rng, max_attempts=max_attempts)

    if not is_derangement(participants, pairs):
        raise AssignmentError("Generated assignments failed validation.")

    try:
        rows = [
            SantaAssignment(
                occasion_id=occasion.id,
                giver_id=int(pair.giver_id),
                receiver_ciphertext=encrypt_receiver(int(pair.receiver_id)),
            )
            for pair in pairs
        ]
    except CipherError as e:
        logger.exception("Could not encrypt assignments for occasion %s", occasion.id)
        raise AssignmentError("Assignments could not be stored.") from e

    try:
        if not _claim_matched_flag(occasion.id):
            raise AssignmentConflict("Secret Santas have already been matched for this occasion.")

        SantaAssignment.query.filter_by(occasion_id=occasion.id).delete(synchronize_session=False)
        db.session.add_all(rows)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    db.session.refresh(occasion)
    logger.info("Occasion %s matched: %d participants", occasion.id, len(pairs))
    return pairs


def reset_matching(occasion: Occasion) -> None:
    SantaAssignment.query.filter_by(occasion_id=occasion.id).delete(synchronize_session=False)
    occasion.is_matched = False
    occasion.matched_at = None
    db.session.commit()
    logger.info("Occasion %s matching reset", occasion.id)


def assignment_for(occasion: Occasion, giver_id: int) -> OccasionMember | None:
    """Returns the receiver's membership record for giver_id, or None if not matched."""
    if not occasion.is_matched:
        return None

    row = SantaAssignment.query.filter_by(occasion_id=occasion.id, giver_id=giver_id).first()
    if row is None:
        return None

    try:
        receiver_id = decrypt_receiver(row.receiver_ciphertext)
    except CipherError:
        logger.exception("Undecryptable assignment for occasion %s", occasion.id)
        raise AssignmentError("Stored assignment could not be read.")

    return occasion.member_for(receiver_id)
