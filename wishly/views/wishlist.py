from __future__ import annotations

from flask import Blueprint, jsonify
from flask_login import current_user

from ..policies import LoginRequiredMixin, OccasionMemberMixin
from ..services.occasions import OccasionNotFound, get_occasion_for_member
from ..services.wishlist import (
    add_item,
    delete_item,
    get_item,
    items_for,
    mark_purchased,
    unmark_purchased,
    update_item,
)
from . import form_fields, form_value

wishlist_bp = Blueprint("wishlist", __name__)


def _item_for_member(item_id: int):
    """Items are visible only to members of the item's occasion."""
    item = get_item(item_id)
    get_occasion_for_member(item.occasion_id, current_user)
    return item


class MyWishlistView(OccasionMemberMixin):
    def get(self, occasion_id: int):
        items = items_for(current_user.id, self.occasion)
        return jsonify({"items": [i.to_dict(current_user.id) for i in items]})

    def post(self, occasion_id: int):
        item = add_item(
            current_user,
            self.occasion,
            product_name=form_value("product_name"),
            product_url=form_value("product_url"),
            price=form_value("price"),
            notes=form_value("notes"),
            priority=form_value("priority"),
        )
        resp = jsonify({"item": item.to_dict(current_user.id)})
        resp.status_code = 201
        return resp


class MemberWishlistView(OccasionMemberMixin):
    def get(self, occasion_id: int, user_id: int):
        member = self.occasion.member_for(user_id)
        if member is None:
            raise OccasionNotFound("Member not found.")
        items = items_for(user_id, self.occasion)
        return jsonify({"member": member.to_dict(), "items": [i.to_dict(current_user.id) for i in items]})


class ItemView(LoginRequiredMixin):
    def patch(self, item_id: int):
        item = _item_for_member(item_id)
        fields = form_fields("product_name", "product_url", "price", "notes", "priority")
        item = update_item(item, current_user, **fields)
        return jsonify({"item": item.to_dict(current_user.id)})

    def delete(self, item_id: int):
        item = _item_for_member(item_id)
        delete_item(item, current_user)
        return jsonify({"ok": True})


class PurchaseView(LoginRequiredMixin):
    def post(self, item_id: int):
        item = mark_purchased(_item_for_member(item_id), current_user)
        return jsonify({"item": item.to_dict(current_user.id)})

    def delete(self, item_id: int):
        item = unmark_purchased(_item_for_member(item_id), current_user)
        return jsonify({"item": item.to_dict(current_user.id)})


wishlist_bp.add_url_rule("/occasions/<int:occasion_id>/wishlist", view_func=MyWishlistView.as_view("mine"), methods=["GET", "POST"])
wishlist_bp.add_url_rule(
    "/occasions/<int:occasion_id>/members/<int:user_id>/wishlist",
    view_func=MemberWishlistView.as_view("member"),
)
wishlist_bp.add_url_rule("/wishlist/<int:item_id>", view_func=ItemView.as_view("item"), methods=["PATCH", "DELETE"])
wishlist_bp.add_url_rule("/wishlist/<int:item_id>/purchase", view_func=PurchaseView.as_view("purchase"), methods=["POST", "DELETE"])
