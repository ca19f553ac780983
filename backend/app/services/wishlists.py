from datetime import date
import logging

from app.core.config import Settings
from app.core.context import Clock
from app.core.errors import Forbidden, NotFound, NotYetAvailable
from app.core.share_token import ShareTokenExhausted, ShareTokenGenerator
from app.core.visibility import ViewerRole, project, reveal_claims, thank_you_summary
from app.models.models import Item, Recipient, Wishlist
from app.schemas.wishlist import (
    ItemCreate,
    ItemUpdate,
    OwnerWishlistPublic,
    SharedWishlistPublic,
    ThankYouPublic,
    WishlistCreate,
    WishlistPublic,
    WishlistUpdate,
)
from app.services.store import WishlistStore


logger = logging.getLogger("wishlist.wishlists")

# Fresh tokens after a lost insert race; collisions themselves are handled by the generator
CREATE_RACE_RETRIES = 3


class WishlistService:
    """Owner CRUD plus the two read projections of a wishlist."""

    def __init__(
        self,
        store: WishlistStore,
        *,
        settings: Settings,
        clock: Clock,
        share_tokens: ShareTokenGenerator,
    ) -> None:
        self.store = store
        self.settings = settings
        self.clock = clock
        self.share_tokens = share_tokens

    def default_end_date(self) -> date:
        today = self.clock().date()
        return date(today.year, self.settings.default_end_month, self.settings.default_end_day)

    async def _owned_wishlist(self, owner: Recipient, wishlist_id: int) -> Wishlist:
        wishlist = await self.store.get_owned_wishlist(owner.id, wishlist_id)
        if wishlist is None:
            raise NotFound("Wishlist not found")
        return wishlist

    async def _owned_item(self, owner: Recipient, item_id: int) -> Item:
        item = await self.store.get_owned_item(owner.id, item_id)
        if item is None:
            raise NotFound("Item not found")
        return item

    # ── Wishlists ───────────────────────────────────────────────────────────

    async def list_wishlists(self, owner: Recipient) -> list[WishlistPublic]:
        wishlists = await self.store.list_wishlists(owner.id)
        return [WishlistPublic.model_validate(w) for w in wishlists]

    async def create_wishlist(self, owner: Recipient, payload: WishlistCreate) -> WishlistPublic:
        end_date = payload.end_date or self.default_end_date()
        # A rejected insert rolls back and expires every instance in the session
        owner_id, owner_name = owner.id, owner.name
        for attempt in range(CREATE_RACE_RETRIES):
            token = await self.share_tokens.generate_unique(self.store.share_token_taken)
            wishlist = await self.store.create_wishlist(
                owner_id=owner_id,
                title=payload.title,
                end_date=end_date,
                share_token=token,
                created_at=self.clock(),
            )
            if wishlist is not None:
                logger.info(
                    'Created wishlist "%s" by %s (token: %s)',
                    wishlist.title,
                    owner_name,
                    wishlist.share_token,
                )
                if attempt:
                    await self.store.reload(owner)
                return WishlistPublic.model_validate(wishlist)
        raise ShareTokenExhausted("Share token kept colliding with concurrent inserts")

    async def get_wishlist(
        self,
        owner: Recipient,
        wishlist_id: int,
        preview: bool = False,
    ) -> OwnerWishlistPublic:
        wishlist = await self._owned_wishlist(owner, wishlist_id)
        now = self.clock()
        past_end_date = reveal_claims(wishlist.end_date, now)
        reveal = reveal_claims(wishlist.end_date, now, preview)

        items = await self.store.list_items(wishlist.id)
        claims = await self.store.claims_for_wishlist(wishlist.id) if reveal else {}
        return OwnerWishlistPublic(
            **WishlistPublic.model_validate(wishlist).model_dump(),
            items=project(items, claims, ViewerRole.OWNER, reveal),
            past_end_date=past_end_date,
        )

    async def update_wishlist(
        self,
        owner: Recipient,
        wishlist_id: int,
        payload: WishlistUpdate,
    ) -> WishlistPublic:
        wishlist = await self._owned_wishlist(owner, wishlist_id)
        wishlist = await self.store.update_wishlist(
            wishlist,
            title=payload.title,
            end_date=payload.end_date,
        )
        return WishlistPublic.model_validate(wishlist)

    async def delete_wishlist(self, owner: Recipient, wishlist_id: int) -> Wishlist:
        wishlist = await self._owned_wishlist(owner, wishlist_id)
        await self.store.delete_wishlist(wishlist)
        return wishlist

    # ── Items ───────────────────────────────────────────────────────────────

    async def add_item(self, owner: Recipient, wishlist_id: int, payload: ItemCreate) -> Item:
        wishlist = await self._owned_wishlist(owner, wishlist_id)
        item = await self.store.add_item(
            wishlist,
            name=payload.name,
            description=payload.description,
            link=payload.link,
            created_at=self.clock(),
        )
        logger.info('Added item "%s" to "%s" by %s', item.name, wishlist.title, owner.name)
        return item

    async def update_item(self, owner: Recipient, item_id: int, payload: ItemUpdate) -> Item:
        item = await self._owned_item(owner, item_id)
        return await self.store.update_item(item, payload.model_dump(exclude_unset=True))

    async def delete_item(self, owner: Recipient, item_id: int) -> Item:
        item = await self._owned_item(owner, item_id)
        await self.store.delete_item(item)
        return item

    # ── Gifter view ─────────────────────────────────────────────────────────

    async def get_shared_wishlist(
        self,
        share_token: str,
        viewer: Recipient | None = None,
    ) -> SharedWishlistPublic:
        wishlist = await self.store.get_by_share_token(share_token)
        if wishlist is None:
            logger.info("Shared wishlist not found token=%s", share_token)
            raise NotFound("Wishlist not found")

        if viewer is not None and viewer.id == wishlist.owner_id:
            logger.info("Blocked owner from viewing own shared list recipient_id=%s", viewer.id)
            raise Forbidden(
                "You cannot view your own wishlist as a gifter - no peeking at surprises!"
            )

        reveal = reveal_claims(wishlist.end_date, self.clock())
        items = await self.store.list_items(wishlist.id)
        claims = await self.store.claims_for_wishlist(wishlist.id)
        return SharedWishlistPublic(
            id=wishlist.id,
            title=wishlist.title,
            recipient_name=wishlist.owner.name,
            end_date=wishlist.end_date,
            past_end_date=reveal,
            items=project(items, claims, ViewerRole.GIFTER, reveal),
            total_items=len(items),
            claimed_count=len(claims),
        )

    # ── Thank-you list ──────────────────────────────────────────────────────

    async def get_thank_you_list(
        self,
        owner: Recipient,
        wishlist_id: int,
        preview: bool = False,
    ) -> ThankYouPublic:
        wishlist = await self._owned_wishlist(owner, wishlist_id)
        if not reveal_claims(wishlist.end_date, self.clock(), preview):
            raise NotYetAvailable(
                f"Thank you list not available until after {wishlist.end_date.isoformat()}"
            )
        rows = await self.store.claimed_items(wishlist.id)
        return ThankYouPublic(
            wishlist_title=wishlist.title,
            end_date=wishlist.end_date,
            gifts=thank_you_summary(rows),
        )
