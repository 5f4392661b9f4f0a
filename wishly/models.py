from datetime import datetime
from flask_login import UserMixin
from .extensions import db, login_manager


OCCASION_EMOJI = {
    "birthday": "🎂",
    "valentine": "💝",
    "anniversary": "💐",
    "christmas": "🎄",
    "wedding": "💍",
    "graduation": "🎓",
    "secret_santa": "🎅",
    "other": "🎁",
}


class User(UserMixin, db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), nullable=False)
    # Always stored lower-cased; invites look users up by email.
    email = db.Column(db.String(255), unique=True, nullable=False)

    # salted Passlib hash of SHA-256(passphrase) from the client
    passkey_hash = db.Column(db.String(255), nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "email": self.email}


class Occasion(db.Model):
    __tablename__ = "occasions"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    type = db.Column(db.String(32), default="other", nullable=False)
    emoji = db.Column(db.String(8), default=OCCASION_EMOJI["other"], nullable=False)
    budget = db.Column(db.Numeric(10, 2), nullable=True)
    date = db.Column(db.Date, nullable=True)
    is_private = db.Column(db.Boolean, default=False, nullable=False)

    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_by = db.relationship("User", foreign_keys=[created_by_id])
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    # --- Secret Santa matching ---
    # Claimed with a conditional UPDATE so two concurrent "match" requests
    # cannot both write assignments.
    is_matched = db.Column(db.Boolean, default=False, nullable=False)
    matched_at = db.Column(db.DateTime, nullable=True)

    members = db.relationship(
        "OccasionMember",
        back_populates="occasion",
        cascade="all, delete-orphan",
        order_by=lambda: [OccasionMember.joined_at, OccasionMember.id],
    )

    def member_for(self, user_id: int):
        return next((m for m in self.members if m.user_id == user_id), None)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "emoji": self.emoji,
            "budget": float(self.budget) if self.budget is not None else None,
            "date": self.date.isoformat() if self.date else None,
            "is_private": self.is_private,
            "created_by": self.created_by_id,
            "creator_name": self.created_by.name if self.created_by else None,
            "is_matched": self.is_matched,
            "matched_at": self.matched_at.isoformat() if self.matched_at else None,
            "members": [m.to_dict() for m in self.members],
        }


class OccasionMember(db.Model):
    __tablename__ = "occasion_members"

    id = db.Column(db.Integer, primary_key=True)
    occasion_id = db.Column(db.Integer, db.ForeignKey("occasions.id", ondelete="CASCADE"), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name = db.Column(db.String(64), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    joined_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    occasion = db.relationship("Occasion", back_populates="members")

    __table_args__ = (
        db.UniqueConstraint("occasion_id", "user_id", name="uq_occasion_member"),
    )

    def to_dict(self) -> dict:
        return {"user_id": self.user_id, "name": self.name, "email": self.email}


class OccasionInvite(db.Model):
    __tablename__ = "occasion_invites"

    id = db.Column(db.Integer, primary_key=True)
    occasion_id = db.Column(db.Integer, db.ForeignKey("occasions.id", ondelete="CASCADE"), nullable=False)
    invited_user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    invited_email = db.Column(db.String(255), nullable=False)
    invited_by_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    # pending | accepted | declined
    status = db.Column(db.String(16), default="pending", nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    occasion = db.relationship("Occasion")
    invited_by = db.relationship("User", foreign_keys=[invited_by_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "occasion_id": self.occasion_id,
            "occasion_name": self.occasion.name,
            "occasion_emoji": self.occasion.emoji,
            "invited_by_name": self.invited_by.name,
            "invited_email": self.invited_email,
            "status": self.status,
        }


class SantaAssignment(db.Model):
    """
    One row per giver. The receiver is stored only as a Fernet token so the
    pairs cannot be read from the database directly.
    """
    __tablename__ = "santa_assignments"

    id = db.Column(db.Integer, primary_key=True)
    occasion_id = db.Column(db.Integer, db.ForeignKey("occasions.id", ondelete="CASCADE"), nullable=False)
    giver_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    receiver_ciphertext = db.Column(db.Text, nullable=False)

    __table_args__ = (
        db.UniqueConstraint("occasion_id", "giver_id", name="uq_santa_assignment_giver"),
    )


class WishlistItem(db.Model):
    __tablename__ = "wishlist_items"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    occasion_id = db.Column(db.Integer, db.ForeignKey("occasions.id", ondelete="CASCADE"), nullable=False)

    product_name = db.Column(db.String(255), nullable=False)
    product_url = db.Column(db.Text, nullable=False)
    asin = db.Column(db.String(10), nullable=True)
    price = db.Column(db.String(32), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    emoji = db.Column(db.String(8), default="🎁", nullable=False)
    priority = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    is_purchased = db.Column(db.Boolean, default=False, nullable=False)
    purchased_by_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    purchased_by_name = db.Column(db.String(64), nullable=True)
    purchased_at = db.Column(db.DateTime, nullable=True)

    def to_dict(self, viewer_id: int) -> dict:
        data = {
            "id": self.id,
            "user_id": self.user_id,
            "occasion_id": self.occasion_id,
            "product_name": self.product_name,
            "product_url": self.product_url,
            "asin": self.asin,
            "price": self.price,
            "notes": self.notes,
            "emoji": self.emoji,
            "priority": self.priority,
            "created_at": self.created_at.isoformat(),
        }
        # Owners never see whether their own items were bought.
        if viewer_id != self.user_id:
            data.update(
                is_purchased=self.is_purchased,
                purchased_by=self.purchased_by_id,
                purchased_by_name=self.purchased_by_name,
                purchased_at=self.purchased_at.isoformat() if self.purchased_at else None,
            )
        return data


@login_manager.user_loader
def load_user(user_id: str):
    return db.session.get(User, int(user_id))
