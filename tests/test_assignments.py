import random
from datetime import datetime, timedelta

import pytest

from wishly.extensions import db
from wishly.matching import InsufficientParticipants
from wishly.models import Occasion, OccasionMember, SantaAssignment, User
from wishly.security import decrypt_receiver
from wishly.services.assignments import (
    AssignmentConflict,
    assignment_for,
    reset_matching,
    run_matching,
)
from wishly.services.occasions import create_occasion, participants_for


def add_user(name):
    user = User(name=name, email=f"{name.lower()}@example.com", passkey_hash="x")
    db.session.add(user)
    db.session.commit()
    return user


def santa_occasion(*names):
    users = [add_user(n) for n in names]
    occasion = create_occasion(users[0], "Office Santa", "secret_santa")
    for u in users[1:]:
        occasion.members.append(OccasionMember(user_id=u.id, name=u.name, email=u.email))
    db.session.commit()
    return occasion, users


def test_participants_follow_join_order(app_ctx):
    occasion, users = santa_occasion("Ann", "Ben", "Cat")
    assert [p.id for p in participants_for(occasion)] == [str(u.id) for u in users]
    assert [p.name for p in participants_for(occasion)] == ["Ann", "Ben", "Cat"]


def test_run_matching_stores_encrypted_pairs_and_sets_flag(app_ctx):
    occasion, _ = santa_occasion("Ann", "Ben", "Cat", "Dan")

    pairs = run_matching(occasion, rng=random.Random(1))

    assert len(pairs) == 4
    assert occasion.is_matched is True
    assert occasion.matched_at is not None

    rows = SantaAssignment.query.filter_by(occasion_id=occasion.id).all()
    assert len(rows) == 4
    stored = {r.giver_id: decrypt_receiver(r.receiver_ciphertext) for r in rows}
    assert stored == {int(p.giver_id): int(p.receiver_id) for p in pairs}


def test_assignment_for_returns_receiver_member(app_ctx):
    occasion, users = santa_occasion("Ann", "Ben")
    run_matching(occasion, rng=random.Random(0))

    ann, ben = users
    assert assignment_for(occasion, ann.id).user_id == ben.id
    assert assignment_for(occasion, ben.id).user_id == ann.id


def test_assignment_for_before_matching_is_none(app_ctx):
    occasion, users = santa_occasion("Ann", "Ben")
    assert assignment_for(occasion, users[0].id) is None


def test_failed_matching_leaves_flag_unset(app_ctx):
    occasion, _ = santa_occasion("Ann")

    with pytest.raises(InsufficientParticipants):
        run_matching(occasion)

    db.session.refresh(occasion)
    assert occasion.is_matched is False
    assert SantaAssignment.query.count() == 0


def test_second_matching_is_a_conflict(app_ctx):
    occasion, _ = santa_occasion("Ann", "Ben", "Cat")
    run_matching(occasion, rng=random.Random(2))
    first = {r.giver_id: r.receiver_ciphertext for r in SantaAssignment.query.all()}

    with pytest.raises(AssignmentConflict):
        run_matching(occasion, rng=random.Random(3))

    assert {r.giver_id: r.receiver_ciphertext for r in SantaAssignment.query.all()} == first


def test_stale_occasion_loses_the_race(app_ctx):
    occasion, _ = santa_occasion("Ann", "Ben", "Cat")
    assert occasion.is_matched is False
    # Flag claimed behind this request's back; the loaded object still says False.
    Occasion.query.filter_by(id=occasion.id).update({"is_matched": True}, synchronize_session=False)

    with pytest.raises(AssignmentConflict):
        run_matching(occasion, rng=random.Random(4))

    assert SantaAssignment.query.count() == 0


def test_reset_then_rematch_replaces_pairs(app_ctx):
    occasion, _ = santa_occasion("Ann", "Ben", "Cat")
    run_matching(occasion, rng=random.Random(5))

    reset_matching(occasion)
    assert occasion.is_matched is False
    assert occasion.matched_at is None
    assert SantaAssignment.query.count() == 0

    pairs = run_matching(occasion, rng=random.Random(6))
    rows = SantaAssignment.query.filter_by(occasion_id=occasion.id).all()
    stored = {r.giver_id: decrypt_receiver(r.receiver_ciphertext) for r in rows}
    assert stored == {int(p.giver_id): int(p.receiver_id) for p in pairs}
    assert set(stored) == {int(p.giver_id) for p in pairs}


def test_participants_are_ordered_by_join_time_not_row_id(app_ctx):
    occasion, users = santa_occasion("Ann", "Ben", "Cat")
    start = datetime(2026, 11, 1, 12, 0)
    # Cat joined first, then Ann, then Ben.
    offsets = {users[2].id: 0, users[0].id: 1, users[1].id: 2}
    for member in occasion.members:
        member.joined_at = start + timedelta(minutes=offsets[member.user_id])
    db.session.commit()
    db.session.expire(occasion, ["members"])

    assert [p.name for p in participants_for(occasion)] == ["Cat", "Ann", "Ben"]


def test_participants_with_same_join_time_fall_back_to_row_id(app_ctx):
    occasion, users = santa_occasion("Ann", "Ben", "Cat")
    same = datetime(2026, 11, 1, 12, 0)
    for member in occasion.members:
        member.joined_at = same
    db.session.commit()
    db.session.expire(occasion, ["members"])

    assert [p.id for p in participants_for(occasion)] == [str(u.id) for u in users]
