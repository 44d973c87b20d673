import logging
from typing import Any, Dict, List

from .storage import ClientStorage

logger = logging.getLogger(__name__)

GUEST_CART_KEY = "guestCart"
MAX_LINE_QUANTITY = 99


def _valid_line(line: Any) -> bool:
    return (
        isinstance(line, dict)
        and isinstance(line.get("productId"), str)
        and isinstance(line.get("quantity"), int)
        and line["quantity"] > 0
    )


class GuestCartStore:
    """Cart lines for a visitor who has not signed in.

    Lines are ``{"productId": str, "quantity": int}`` in insertion order,
    one line per product.
    """

    def __init__(self, storage: ClientStorage):
        self.storage = storage

    def _read(self) -> List[Dict[str, Any]]:
        raw = self.storage.get(GUEST_CART_KEY, [])
        if not isinstance(raw, list):
            logger.warning("Discarding malformed guest cart")
            return []
        return [dict(line) for line in raw if _valid_line(line)]

    def _write(self, lines: List[Dict[str, Any]]) -> None:
        self.storage.set(GUEST_CART_KEY, lines)

    def items(self) -> List[Dict[str, Any]]:
        return self._read()

    def is_empty(self) -> bool:
        return not self._read()

    def add(self, product_id: str, quantity: int = 1) -> List[Dict[str, Any]]:
        if quantity < 1:
            raise ValueError("quantity must be at least 1")
        lines = self._read()
        for line in lines:
            if line["productId"] == product_id:
                line["quantity"] = min(line["quantity"] + quantity, MAX_LINE_QUANTITY)
                break
        else:
            lines.append({"productId": product_id, "quantity": min(quantity, MAX_LINE_QUANTITY)})
        self._write(lines)
        return lines

    def set_quantity(self, product_id: str, quantity: int) -> List[Dict[str, Any]]:
        if quantity < 1:
            return self.remove(product_id)
        lines = self._read()
        for line in lines:
            if line["productId"] == product_id:
                line["quantity"] = min(quantity, MAX_LINE_QUANTITY)
                self._write(lines)
                break
        return lines

    def remove(self, product_id: str) -> List[Dict[str, Any]]:
        lines = [line for line in self._read() if line["productId"] != product_id]
        self._write(lines)
        return lines

    def clear(self) -> None:
        self.storage.remove(GUEST_CART_KEY)
