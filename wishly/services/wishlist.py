from __future__ import annotations

import logging
from datetime import datetime

from flask import current_app

from ..affiliate import add_affiliate_tag, extract_product_info
from ..errors import Conflict, Forbidden, NotFound, WishlyError
from ..extensions import db
from ..models import Occasion, User, WishlistItem


logger = logging.getLogger(__name__)


class WishlistError(WishlyError):
    pass


def parse_priority(raw) -> int | None:
    if raw is None or str(raw).strip() == "":
        return None
    try:
        value = int(raw)
    except (TypeError, ValueError) as e:
        raise WishlistError("Priority must be 1, 2 or 3.") from e
    if value not in (1, 2, 3):
        raise WishlistError("Priority must be 1, 2 or 3.")
    return value


def _clean(raw) -> str | None:
    return (str(raw).strip() if raw is not None else "") or None


def add_item(
    user: User,
    occasion: Occasion,
    product_name: str,
    product_url: str,
    price=None,
    notes=None,
    priority=None,
) -> WishlistItem:
    product_name = (product_name or "").strip()
    product_url = (product_url or "").strip()
    if not product_name:
        raise WishlistError("Please enter a product name.")
    if not product_url:
        raise WishlistError("Please enter an Amazon product URL.")

    info = extract_product_info(product_url)
    item = WishlistItem(
        user_id=user.id,
        occasion_id=occasion.id,
        product_name=product_name,
        product_url=add_affiliate_tag(product_url, current_app.config.get("AMAZON_ASSOCIATE_TAG")),
        asin=info.asin,
        price=_clean(price),
        notes=_clean(notes),
        priority=parse_priority(priority),
    )
    db.session.add(item)
    db.session.commit()

    logger.info("User %s added item %s to occasion %s", user.id, item.id, occasion.id)
    return item


def items_for(user_id: int, occasion: Occasion) -> list[WishlistItem]:
    return (
        WishlistItem.query.filter_by(user_id=user_id, occasion_id=occasion.id)
        .order_by(WishlistItem.priority.is_(None), WishlistItem.priority.asc(), WishlistItem.id.asc())
        .all()
    )


def get_item(item_id: int) -> WishlistItem:
    item = db.session.get(WishlistItem, item_id)
    if item is None:
        raise NotFound("Item not found.")
    return item


def update_item(item: WishlistItem, user: User, **fields) -> WishlistItem:
    if item.user_id != user.id:
        raise Forbidden("Only the owner can edit this item.")

    if "product_name" in fields:
        name = (fields["product_name"] or "").strip()
        if not name:
            raise WishlistError("Please enter a product name.")
        item.product_name = name
    if "product_url" in fields:
        url = (fields["product_url"] or "").strip()
        if not url:
            raise WishlistError("Please enter an Amazon product URL.")
        item.product_url = add_affiliate_tag(url, current_app.config.get("AMAZON_ASSOCIATE_TAG"))
        item.asin = extract_product_info(url).asin
    if "price" in fields:
        item.price = _clean(fields["price"])
    if "notes" in fields:
        item.notes = _clean(fields["notes"])
    if "priority" in fields:
        item.priority = parse_priority(fields["priority"])

    db.session.commit()
    return item


def delete_item(item: WishlistItem, user: User) -> None:
    if item.user_id != user.id:
        raise Forbidden("Only the owner can delete this item.")
    db.session.delete(item)
    db.session.commit()
    logger.info("User %s deleted item %s", user.id, item.id)


def mark_purchased(item: WishlistItem, buyer: User) -> WishlistItem:
    if item.user_id == buyer.id:
        raise Forbidden("You cannot mark your own item as purchased.")
    if item.is_purchased:
        raise Conflict(f"Already purchased by {item.purchased_by_name}.")

    item.is_purchased = True
    item.purchased_by_id = buyer.id
    item.purchased_by_name = buyer.name
    item.purchased_at = datetime.utcnow()
    db.session.commit()

    logger.info("User %s marked item %s purchased", buyer.id, item.id)
    return item


def unmark_purchased(item: WishlistItem, buyer: User) -> WishlistItem:
    if not item.is_purchased:
        return item
    if item.purchased_by_id != buyer.id:
        raise Forbidden("Only the person who bought this item can unmark it.")

    item.is_purchased = False
    item.purchased_by_id = None
    item.purchased_by_name = None
    item.purchased_at = None
    db.session.commit()

    logger.info("User %s unmarked item %s", buyer.id, item.id)
    return item
