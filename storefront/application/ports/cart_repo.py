from dataclasses import dataclass
from typing import List, Protocol

MAX_LINE_QUANTITY = 99


@dataclass
class CartLineDto:
    product_id: str
    quantity: int


class CartRepository(Protocol):
    def list_lines(self, user_id: str) -> List[CartLineDto]:
        ...

    def add_quantity(self, user_id: str, product_id: str, quantity: int) -> None:
        """Sum quantity into the line, never past MAX_LINE_QUANTITY."""
        ...

    def set_quantity(self, user_id: str, product_id: str, quantity: int) -> bool:
        ...

    def remove(self, user_id: str, product_id: str) -> bool:
        ...

    def merge(self, user_id: str, merge_key: str, lines: List[CartLineDto]) -> bool:
        """Apply lines once per (user_id, merge_key) in one transaction.

        Returns False without touching the cart when merge_key was already applied.
        """
        ...
