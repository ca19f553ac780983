"""Single-winner claim arbitration.

Concurrent claims on one item race to insert a row into ``claims``; the
unique constraint on ``claims.item_id`` lets exactly one of them commit. The
losers get ``Conflict``. Nothing here reads claim state to decide a claim:
``check_available`` is advisory and a claim may still lose right after it
reported ``True``.
"""

from dataclasses import dataclass
from datetime import datetime
from time import perf_counter
import logging

from app.core.claim_metrics import ClaimMetrics
from app.core.context import Clock
from app.core.errors import Conflict, Expired, InvalidInput, NotFound
from app.core.visibility import reveal_claims
from app.models.models import Wishlist
from app.services.store import WishlistStore


logger = logging.getLogger("wishlist.claims")


@dataclass(frozen=True)
class ClaimReceipt:
    claim_id: int
    item_id: int
    gifter_id: int
    claimed_at: datetime


def normalize_gifter(name: str | None, email: str | None) -> tuple[str, str | None]:
    """Strip both fields; an empty email becomes None, the one "absent" value."""
    clean_name = (name or "").strip()
    clean_email = (email or "").strip() or None
    return clean_name, clean_email


class ClaimArbiter:
    def __init__(
        self,
        store: WishlistStore,
        clock: Clock,
        metrics: ClaimMetrics | None = None,
    ) -> None:
        self.store = store
        self.clock = clock
        self.metrics = metrics or ClaimMetrics()

    async def _resolve_wishlist(self, share_token: str) -> Wishlist:
        wishlist = await self.store.get_by_share_token(share_token)
        if wishlist is None:
            raise NotFound("Wishlist not found")
        return wishlist

    async def check_available(self, share_token: str, item_id: int) -> bool:
        wishlist = await self._resolve_wishlist(share_token)
        item = await self.store.get_item_in_wishlist(wishlist.id, item_id)
        if item is None:
            raise NotFound("Item not found")
        return not await self.store.claim_exists(item.id)

    async def try_claim(
        self,
        share_token: str,
        item_id: int,
        gifter_name: str | None,
        gifter_email: str | None = None,
    ) -> ClaimReceipt:
        start = perf_counter()
        try:
            receipt = await self._try_claim(share_token, item_id, gifter_name, gifter_email)
        except Conflict:
            self.metrics.record_conflict((perf_counter() - start) * 1000.0)
            raise
        except (InvalidInput, NotFound, Expired):
            self.metrics.record_rejected((perf_counter() - start) * 1000.0)
            raise
        self.metrics.record_success((perf_counter() - start) * 1000.0)
        return receipt

    async def _try_claim(
        self,
        share_token: str,
        item_id: int,
        gifter_name: str | None,
        gifter_email: str | None,
    ) -> ClaimReceipt:
        name, email = normalize_gifter(gifter_name, gifter_email)
        if not name:
            raise InvalidInput("Your name is required")

        wishlist = await self._resolve_wishlist(share_token)

        now = self.clock()
        if reveal_claims(wishlist.end_date, now):
            logger.info(
                "Claim after end date wishlist_id=%s end_date=%s item_id=%s",
                wishlist.id,
                wishlist.end_date,
                item_id,
            )
            raise Expired("This wishlist has expired")

        item = await self.store.get_item_in_wishlist(wishlist.id, item_id)
        if item is None:
            raise NotFound("Item not found")
        item_name = item.name

        claim = await self.store.claim_if_absent(
            item_id=item.id,
            gifter_name=name,
            gifter_email=email,
            claimed_at=now,
        )
        if claim is None:
            # The insert lost; tell a deleted item apart from a taken one
            if not await self.store.item_exists(item_id):
                raise NotFound("Item not found")
            logger.info("Claim conflict item_id=%s gifter=%s", item_id, name)
            raise Conflict("This item has already been claimed")

        logger.info(
            '%s claimed "%s" from "%s" (for %s)',
            name,
            item_name,
            wishlist.title,
            wishlist.owner.name,
        )
        return ClaimReceipt(
            claim_id=claim.id,
            item_id=claim.item_id,
            gifter_id=claim.gifter_id,
            claimed_at=claim.claimed_at,
        )
