"""
Session cart access.

Carts are keyed by session id. Views build a CartContext from the request
and pass it down explicitly; services never read the request.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from orders.models import CartItem

if TYPE_CHECKING:
    from django.db.models import QuerySet

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CartContext:
    """Identifies whose cart is being checked out."""

    session_id: str
    user_id: int | None = None

    @classmethod
    def from_request(cls, request) -> CartContext:
        """Build a context from a DRF/Django request, creating the session if needed."""
        session = request.session
        if not session.session_key:
            session.save()
        user_id = request.user.pk if request.user.is_authenticated else None
        return cls(session_id=session.session_key, user_id=user_id)


class CartService:
    @staticmethod
    def get_lines(session_id: str) -> QuerySet[CartItem]:
        return CartItem.objects.filter(session_id=session_id).select_related("product")

    @staticmethod
    def clear(session_id: str) -> int:
        deleted, _ = CartItem.objects.filter(session_id=session_id).delete()
        logger.info("Cleared cart", extra={"deleted": deleted})
        return deleted
