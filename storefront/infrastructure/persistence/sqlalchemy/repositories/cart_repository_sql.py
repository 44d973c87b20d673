from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from .....core.clock import utcnow
from .....db.models import CartItem, CartMergeReceipt
from .....application.ports.cart_repo import MAX_LINE_QUANTITY, CartRepository, CartLineDto


class SqlCartRepository(CartRepository):
    def __init__(self, session: Session):
        self.session = session

    def _line(self, user_id: str, product_id: str) -> Optional[CartItem]:
        return self.session.exec(
            select(CartItem).where(CartItem.user_id == user_id, CartItem.product_id == product_id)
        ).first()

    def _bump(self, user_id: str, product_id: str, quantity: int) -> None:
        line = self._line(user_id, product_id)
        if line:
            line.quantity = min(line.quantity + quantity, MAX_LINE_QUANTITY)
            line.updated_at = utcnow()
        else:
            line = CartItem(user_id=user_id, product_id=product_id, quantity=min(quantity, MAX_LINE_QUANTITY))
        self.session.add(line)

    def list_lines(self, user_id: str) -> List[CartLineDto]:
        rows = self.session.exec(
            select(CartItem).where(CartItem.user_id == user_id).order_by(CartItem.id)
        ).all()
        return [CartLineDto(product_id=r.product_id, quantity=r.quantity) for r in rows]

    def add_quantity(self, user_id: str, product_id: str, quantity: int) -> None:
        self._bump(user_id, product_id, quantity)
        self.session.commit()

    def set_quantity(self, user_id: str, product_id: str, quantity: int) -> bool:
        line = self._line(user_id, product_id)
        if not line:
            return False
        line.quantity = quantity
        line.updated_at = utcnow()
        self.session.add(line)
        self.session.commit()
        return True

    def remove(self, user_id: str, product_id: str) -> bool:
        line = self._line(user_id, product_id)
        if not line:
            return False
        self.session.delete(line)
        self.session.commit()
        return True

    def merge(self, user_id: str, merge_key: str, lines: List[CartLineDto]) -> bool:
        already = self.session.exec(
            select(CartMergeReceipt).where(
                CartMergeReceipt.user_id == user_id,
                CartMergeReceipt.merge_key == merge_key,
            )
        ).first()
        if already:
            return False

        # Receipt and lines commit together so a replay can never apply half a merge
        try:
            self.session.add(CartMergeReceipt(user_id=user_id, merge_key=merge_key))
            for line in lines:
                # _line() autoflushes, so the receipt conflict can surface here too
                self._bump(user_id, line.product_id, line.quantity)
            self.session.commit()
        except IntegrityError:
            # A concurrent retry committed the same receipt first
            self.session.rollback()
            return False
        return True
