from collections.abc import AsyncGenerator
from typing import Annotated
import logging

from fastapi import Cookie, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.context import AppContext
from app.core.errors import Unauthorized
from app.core.security import decode_access_token
from app.models.models import Recipient
from app.services.claims import ClaimArbiter
from app.services.store import WishlistStore
from app.services.wishlists import WishlistService


logger = logging.getLogger("wishlist.auth")


def get_context(request: Request) -> AppContext:
    return request.app.state.context


ContextDep = Annotated[AppContext, Depends(get_context)]


async def get_db(context: ContextDep) -> AsyncGenerator[AsyncSession, None]:
    async with context.database.session() as session:
        yield session


DbSessionDep = Annotated[AsyncSession, Depends(get_db)]


def get_store(db: DbSessionDep) -> WishlistStore:
    return WishlistStore(db)


StoreDep = Annotated[WishlistStore, Depends(get_store)]


def get_wishlist_service(store: StoreDep, context: ContextDep) -> WishlistService:
    return WishlistService(
        store,
        settings=context.settings,
        clock=context.clock,
        share_tokens=context.share_tokens,
    )


def get_claim_arbiter(store: StoreDep, context: ContextDep) -> ClaimArbiter:
    return ClaimArbiter(store, context.clock, context.claim_metrics)


WishlistServiceDep = Annotated[WishlistService, Depends(get_wishlist_service)]
ClaimArbiterDep = Annotated[ClaimArbiter, Depends(get_claim_arbiter)]


def _extract_token(request: Request, access_token: str | None) -> str | None:
    token = access_token
    if not token:
        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.startswith("Bearer "):
            token = auth_header.removeprefix("Bearer ").strip()
    return token or None


async def _resolve_recipient(
    token: str | None,
    store: WishlistStore,
    context: AppContext,
) -> Recipient | None:
    if not token:
        return None
    payload = decode_access_token(token, context.settings)
    if not payload or "sub" not in payload:
        return None
    try:
        recipient_id = int(payload["sub"])
    except (TypeError, ValueError):
        return None
    return await store.get_recipient(recipient_id)


async def get_current_recipient(
    request: Request,
    store: StoreDep,
    context: ContextDep,
    access_token: str | None = Cookie(default=None, alias="access_token"),
) -> Recipient:
    token = _extract_token(request, access_token)
    if not token:
        logger.info(
            "Auth token missing path=%s ip=%s",
            request.url.path,
            request.client.host if request.client else None,
        )
        raise Unauthorized("Not authenticated")

    recipient = await _resolve_recipient(token, store, context)
    if recipient is None:
        logger.info("Auth token rejected path=%s", request.url.path)
        raise Unauthorized("Invalid token")
    return recipient


async def get_optional_recipient(
    request: Request,
    store: StoreDep,
    context: ContextDep,
    access_token: str | None = Cookie(default=None, alias="access_token"),
) -> Recipient | None:
    # An invalid token on a public route means "anonymous", not an error
    return await _resolve_recipient(_extract_token(request, access_token), store, context)


CurrentRecipientDep = Annotated[Recipient, Depends(get_current_recipient)]
OptionalRecipientDep = Annotated[Recipient | None, Depends(get_optional_recipient)]
