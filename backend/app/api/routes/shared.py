"""Gifter-facing access through a wishlist's share token. No login required."""

import logging

from fastapi import APIRouter, Request, Response

from app.api.deps import ClaimArbiterDep, ContextDep, OptionalRecipientDep, WishlistServiceDep
from app.core.audit import audit_claim, audit_owner_self_view
from app.core.errors import Conflict, Forbidden
from app.core.rate_limit import check_rate_limit
from app.schemas.wishlist import (
    AvailabilityPublic,
    ClaimCreate,
    ClaimResultPublic,
    SharedWishlistPublic,
)


router = APIRouter(prefix="/api/shared", tags=["shared"])
logger = logging.getLogger("wishlist.shared")


@router.get("/{share_token}", response_model=SharedWishlistPublic)
async def get_shared_wishlist(
    share_token: str,
    request: Request,
    response: Response,
    viewer: OptionalRecipientDep,
    service: WishlistServiceDep,
) -> SharedWishlistPublic:
    try:
        shared = await service.get_shared_wishlist(share_token, viewer)
    except Forbidden:
        if viewer is not None:
            audit_owner_self_view(request, viewer.id, share_token)
        raise
    # Claim state is live
    response.headers["Cache-Control"] = "no-store"
    logger.info('Viewing wishlist "%s" for %s', shared.title, shared.recipient_name)
    return shared


@router.get("/{share_token}/check/{item_id}", response_model=AvailabilityPublic)
async def check_item_available(
    share_token: str,
    item_id: int,
    response: Response,
    arbiter: ClaimArbiterDep,
) -> AvailabilityPublic:
    response.headers["Cache-Control"] = "no-store"
    available = await arbiter.check_available(share_token, item_id)
    return AvailabilityPublic(available=available)


@router.post("/{share_token}/claim/{item_id}", response_model=ClaimResultPublic)
async def claim_item(
    share_token: str,
    item_id: int,
    payload: ClaimCreate,
    request: Request,
    arbiter: ClaimArbiterDep,
    context: ContextDep,
) -> ClaimResultPublic:
    check_rate_limit(
        request,
        context.rate_limiter,
        context.settings,
        max_requests=context.settings.rate_limit_claim_requests,
        key_suffix="claim",
    )
    try:
        receipt = await arbiter.try_claim(
            share_token,
            item_id,
            payload.gifter_name,
            payload.gifter_email,
        )
    except Conflict:
        audit_claim(request, share_token, item_id, payload.gifter_name, success=False)
        raise
    audit_claim(request, share_token, item_id, payload.gifter_name, success=True)
    return ClaimResultPublic(item_id=receipt.item_id, claimed_at=receipt.claimed_at)
