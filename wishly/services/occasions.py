from __future__ import annotations

import logging
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from ..errors import Conflict, NotFound, WishlyError
from ..extensions import db
from ..matching import Participant
from ..models import OCCASION_EMOJI, Occasion, OccasionInvite, OccasionMember, User


logger = logging.getLogger(__name__)

# Largest value a Numeric(10, 2) column holds
MAX_BUDGET = Decimal("99999999.99")


class OccasionError(WishlyError):
    pass


class OccasionNotFound(NotFound):
    pass


class AlreadyMatched(Conflict):
    pass


def parse_budget(raw) -> Decimal | None:
    if raw is None or str(raw).strip() == "":
        return None
    try:
        value = Decimal(str(raw).strip())
    except InvalidOperation as e:
        raise OccasionError("Budget must be a number.") from e
    if not value.is_finite():
        raise OccasionError("Budget must be a number.")
    if value < 0:
        raise OccasionError("Budget cannot be negative.")
    if value > MAX_BUDGET or value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP) > MAX_BUDGET:
        raise OccasionError(f"Budget cannot exceed {MAX_BUDGET}.")
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def parse_date(raw) -> date | None:
    if raw is None or str(raw).strip() == "":
        return None
    try:
        return date.fromisoformat(str(raw).strip())
    except ValueError as e:
        raise OccasionError("Date must be YYYY-MM-DD.") from e


def _normalize_type(occasion_type: str | None) -> str:
    occasion_type = (occasion_type or "").strip().lower()
    return occasion_type if occasion_type in OCCASION_EMOJI else "other"


def create_occasion(
    creator: User,
    name: str,
    occasion_type: str | None = None,
    budget=None,
    on_date=None,
    is_private: bool = False,
) -> Occasion:
    name = (name or "").strip()
    if not name:
        raise OccasionError("Occasion name is required.")

    occasion_type = _normalize_type(occasion_type)
    occasion = Occasion(
        name=name,
        type=occasion_type,
        emoji=OCCASION_EMOJI[occasion_type],
        budget=parse_budget(budget),
        date=parse_date(on_date),
        is_private=bool(is_private),
        created_by_id=creator.id,
    )
    occasion.members.append(OccasionMember(user_id=creator.id, name=creator.name, email=creator.email))
    db.session.add(occasion)
    db.session.commit()

    logger.info("Occasion %s (%s) created by user %s", occasion.id, occasion.type, creator.id)
    return occasion


def update_occasion(occasion: Occasion, **fields) -> Occasion:
    if "name" in fields:
        name = (fields["name"] or "").strip()
        if not name:
            raise OccasionError("Occasion name is required.")
        occasion.name = name
    if "type" in fields:
        occasion.type = _normalize_type(fields["type"])
        occasion.emoji = OCCASION_EMOJI[occasion.type]
    if "budget" in fields:
        occasion.budget = parse_budget(fields["budget"])
    if "date" in fields:
        occasion.date = parse_date(fields["date"])
    if "is_private" in fields:
        occasion.is_private = bool(fields["is_private"])

    db.session.commit()
    return occasion


def occasions_for_user(user: User) -> list[Occasion]:
    return (
        Occasion.query.join(OccasionMember, OccasionMember.occasion_id == Occasion.id)
        .filter(OccasionMember.user_id == user.id)
        .order_by(Occasion.created_at.desc(), Occasion.id.desc())
        .all()
    )


def get_occasion_for_member(occasion_id: int, user: User) -> Occasion:
    """Non-members get the same error as a missing occasion."""
    occasion = db.session.get(Occasion, occasion_id)
    if occasion is None or occasion.member_for(user.id) is None:
        raise OccasionNotFound("Occasion not found.")
    return occasion


def participants_for(occasion: Occasion) -> list[Participant]:
    return [Participant(id=str(m.user_id), name=m.name) for m in occasion.members]


# --------- Invites ----------

def send_invite(occasion: Occasion, inviter: User, email: str) -> OccasionInvite:
    if occasion.is_matched:
        raise AlreadyMatched("Secret Santas have already been matched. You cannot add new members after matching.")

    email = (email or "").strip().lower()
    if not email:
        raise OccasionError("Email is required.")

    invitee = User.query.filter_by(email=email).first()
    if invitee is None:
        raise OccasionError("No user found with this email. They may need to sign up first.")

    if occasion.member_for(invitee.id) is not None:
        raise Conflict("This user is already a member.")

    pending = OccasionInvite.query.filter_by(
        occasion_id=occasion.id, invited_user_id=invitee.id, status="pending"
    ).first()
    if pending is not None:
        raise Conflict("An invite is already pending for this user.")

    invite = OccasionInvite(
        occasion_id=occasion.id,
        invited_user_id=invitee.id,
        invited_email=email,
        invited_by_id=inviter.id,
    )
    db.session.add(invite)
    db.session.commit()

    logger.info("User %s invited user %s to occasion %s", inviter.id, invitee.id, occasion.id)
    return invite


def pending_invites_for(user: User) -> list[OccasionInvite]:
    return (
        OccasionInvite.query.filter_by(invited_user_id=user.id, status="pending")
        .order_by(OccasionInvite.created_at.asc(), OccasionInvite.id.asc())
        .all()
    )


def get_pending_invite(invite_id: int, user: User) -> OccasionInvite:
    invite = db.session.get(OccasionInvite, invite_id)
    if invite is None or invite.invited_user_id != user.id:
        raise NotFound("Invite not found.")
    if invite.status != "pending":
        raise Conflict(f"Invite has already been {invite.status}.")
    return invite


def accept_invite(invite: OccasionInvite, user: User) -> Occasion:
    occasion = invite.occasion
    if occasion.is_matched:
        raise AlreadyMatched("This occasion has already been matched and is closed to new members.")

    invite.status = "accepted"
    if occasion.member_for(user.id) is None:
        occasion.members.append(OccasionMember(user_id=user.id, name=user.name, email=user.email))
    db.session.commit()

    logger.info("User %s joined occasion %s", user.id, occasion.id)
    return occasion


def decline_invite(invite: OccasionInvite, user: User) -> None:
    invite.status = "declined"
    db.session.commit()
    logger.info("User %s declined invite %s", user.id, invite.id)
