from collections import OrderedDict
from dataclasses import dataclass
from typing import Iterable, List, Tuple
import logging

from ...core.exceptions import NotFoundError, ValidationError
from ..ports.cart_repo import MAX_LINE_QUANTITY, CartRepository, CartLineDto

logger = logging.getLogger(__name__)


def collapse_lines(lines: Iterable[Tuple[str, int]]) -> List[CartLineDto]:
    """Sum quantities per product, keeping first-seen order."""
    merged: "OrderedDict[str, int]" = OrderedDict()
    for product_id, quantity in lines:
        merged[product_id] = merged.get(product_id, 0) + quantity
    return [CartLineDto(product_id=p, quantity=min(q, MAX_LINE_QUANTITY)) for p, q in merged.items()]


@dataclass
class CartService:
    repo: CartRepository

    def get_cart(self, user_id: str) -> List[CartLineDto]:
        return self.repo.list_lines(user_id)

    def add_item(self, user_id: str, product_id: str, quantity: int) -> List[CartLineDto]:
        if quantity < 1:
            raise ValidationError.for_field("quantity", "Quantity must be at least 1")
        self.repo.add_quantity(user_id, product_id, quantity)
        return self.repo.list_lines(user_id)

    def set_quantity(self, user_id: str, product_id: str, quantity: int) -> List[CartLineDto]:
        if quantity < 1:
            raise ValidationError.for_field("quantity", "Quantity must be at least 1")
        if not self.repo.set_quantity(user_id, product_id, min(quantity, MAX_LINE_QUANTITY)):
            raise NotFoundError("Product is not in the cart")
        return self.repo.list_lines(user_id)

    def remove_item(self, user_id: str, product_id: str) -> List[CartLineDto]:
        if not self.repo.remove(user_id, product_id):
            raise NotFoundError("Product is not in the cart")
        return self.repo.list_lines(user_id)

    def merge_guest_cart(self, user_id: str, merge_key: str, lines: Iterable[Tuple[str, int]]) -> List[CartLineDto]:
        """Fold a guest cart into the user's cart once per merge_key.

        Guest lines are collapsed by product and summed into existing lines.
        Replaying the same merge_key leaves the cart unchanged.
        """
        collapsed = collapse_lines(lines)
        for line in collapsed:
            if line.quantity < 1:
                raise ValidationError.for_field("items", "Quantity must be at least 1")
        applied = self.repo.merge(user_id, merge_key, collapsed)
        if applied:
            logger.info(f"Merged {len(collapsed)} guest cart line(s) for user {user_id}")
        else:
            logger.info(f"Ignoring replayed guest cart merge for user {user_id}")
        return self.repo.list_lines(user_id)
