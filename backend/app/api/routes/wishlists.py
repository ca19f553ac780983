"""Recipient-facing wishlist and item management."""

from fastapi import APIRouter, Request, status

from app.api.deps import CurrentRecipientDep, WishlistServiceDep
from app.core.audit import AuditAction, audit_item_action, audit_wishlist_action
from app.schemas.wishlist import (
    ItemCreate,
    ItemPublic,
    ItemUpdate,
    OwnerWishlistPublic,
    ThankYouPublic,
    WishlistCreate,
    WishlistPublic,
    WishlistUpdate,
)


router = APIRouter(prefix="/api/wishlists", tags=["wishlists"])
items_router = APIRouter(prefix="/api/items", tags=["items"])


@router.get("", response_model=list[WishlistPublic])
async def list_my_wishlists(
    current: CurrentRecipientDep,
    service: WishlistServiceDep,
) -> list[WishlistPublic]:
    return await service.list_wishlists(current)


@router.post("", response_model=WishlistPublic, status_code=status.HTTP_201_CREATED)
async def create_wishlist(
    payload: WishlistCreate,
    request: Request,
    current: CurrentRecipientDep,
    service: WishlistServiceDep,
) -> WishlistPublic:
    wishlist = await service.create_wishlist(current, payload)
    audit_wishlist_action(
        AuditAction.WISHLIST_CREATE,
        request,
        current.id,
        wishlist.id,
        {"share_token": wishlist.share_token},
    )
    return wishlist


@router.get("/{wishlist_id}", response_model=OwnerWishlistPublic)
async def get_wishlist(
    wishlist_id: int,
    current: CurrentRecipientDep,
    service: WishlistServiceDep,
    preview: bool = False,
) -> OwnerWishlistPublic:
    """Owner view; claims stay hidden until the end date unless ``preview`` is set."""
    return await service.get_wishlist(current, wishlist_id, preview=preview)


@router.put("/{wishlist_id}", response_model=WishlistPublic)
async def update_wishlist(
    wishlist_id: int,
    payload: WishlistUpdate,
    request: Request,
    current: CurrentRecipientDep,
    service: WishlistServiceDep,
) -> WishlistPublic:
    wishlist = await service.update_wishlist(current, wishlist_id, payload)
    audit_wishlist_action(AuditAction.WISHLIST_UPDATE, request, current.id, wishlist.id)
    return wishlist


@router.delete("/{wishlist_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_wishlist(
    wishlist_id: int,
    request: Request,
    current: CurrentRecipientDep,
    service: WishlistServiceDep,
) -> None:
    wishlist = await service.delete_wishlist(current, wishlist_id)
    audit_wishlist_action(AuditAction.WISHLIST_DELETE, request, current.id, wishlist.id)


@router.get("/{wishlist_id}/thankyou", response_model=ThankYouPublic)
async def get_thank_you_list(
    wishlist_id: int,
    current: CurrentRecipientDep,
    service: WishlistServiceDep,
    preview: bool = False,
) -> ThankYouPublic:
    return await service.get_thank_you_list(current, wishlist_id, preview=preview)


@router.post(
    "/{wishlist_id}/items",
    response_model=ItemPublic,
    status_code=status.HTTP_201_CREATED,
)
async def add_item(
    wishlist_id: int,
    payload: ItemCreate,
    request: Request,
    current: CurrentRecipientDep,
    service: WishlistServiceDep,
) -> ItemPublic:
    item = await service.add_item(current, wishlist_id, payload)
    audit_item_action(AuditAction.ITEM_CREATE, request, current.id, item.id, item.wishlist_id)
    return ItemPublic.model_validate(item)


@items_router.put("/{item_id}", response_model=ItemPublic)
async def update_item(
    item_id: int,
    payload: ItemUpdate,
    request: Request,
    current: CurrentRecipientDep,
    service: WishlistServiceDep,
) -> ItemPublic:
    item = await service.update_item(current, item_id, payload)
    audit_item_action(AuditAction.ITEM_UPDATE, request, current.id, item.id, item.wishlist_id)
    return ItemPublic.model_validate(item)


@items_router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_item(
    item_id: int,
    request: Request,
    current: CurrentRecipientDep,
    service: WishlistServiceDep,
) -> None:
    item = await service.delete_item(current, item_id)
    audit_item_action(AuditAction.ITEM_DELETE, request, current.id, item.id, item.wishlist_id)
