from fastapi import APIRouter, Depends

from ..core.errors import create_success_response
from ..application.ports.user_repo import UserDto
from ..application.services.cart_service import CartService
from ..dependencies import get_cart_service, get_current_user
from ..schemas import AddCartItemRequest, CartResponse, MergeCartRequest, UpdateCartItemRequest

router = APIRouter(prefix="/cart", tags=["Cart"])


@router.get("")
def get_cart(
    current_user: UserDto = Depends(get_current_user),
    cart_service: CartService = Depends(get_cart_service),
):
    return create_success_response(CartResponse.from_lines(cart_service.get_cart(current_user.id)).to_payload())


@router.post("/items")
def add_item(
    body: AddCartItemRequest,
    current_user: UserDto = Depends(get_current_user),
    cart_service: CartService = Depends(get_cart_service),
):
    lines = cart_service.add_item(current_user.id, body.product_id, body.quantity)
    return create_success_response(CartResponse.from_lines(lines).to_payload())


@router.put("/items/{product_id}")
def set_item_quantity(
    product_id: str,
    body: UpdateCartItemRequest,
    current_user: UserDto = Depends(get_current_user),
    cart_service: CartService = Depends(get_cart_service),
):
    lines = cart_service.set_quantity(current_user.id, product_id, body.quantity)
    return create_success_response(CartResponse.from_lines(lines).to_payload())


@router.delete("/items/{product_id}")
def remove_item(
    product_id: str,
    current_user: UserDto = Depends(get_current_user),
    cart_service: CartService = Depends(get_cart_service),
):
    lines = cart_service.remove_item(current_user.id, product_id)
    return create_success_response(CartResponse.from_lines(lines).to_payload())


@router.post("/merge")
def merge_guest_cart(
    body: MergeCartRequest,
    current_user: UserDto = Depends(get_current_user),
    cart_service: CartService = Depends(get_cart_service),
):
    """Fold the guest cart identified by mergeKey into the user's cart. Safe to retry."""
    lines = cart_service.merge_guest_cart(
        current_user.id,
        body.merge_key,
        [(item.product_id, item.quantity) for item in body.items],
    )
    return create_success_response(CartResponse.from_lines(lines).to_payload())
