"""Durable record of recipients, wishlists, items, gifters and claims.

Every mutating method is one transaction and commits before returning. The
``claims.item_id`` unique constraint is what keeps an item to a single claim;
``claim_if_absent`` relies on it instead of checking first.
"""

from datetime import date, datetime
import logging

from sqlalchemy import exists, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.visibility import ClaimedItemRow, ClaimView
from app.models.models import Claim, Gifter, Item, Recipient, Wishlist


logger = logging.getLogger("wishlist.store")


class WishlistStore:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # ── Recipients ──────────────────────────────────────────────────────────

    async def get_recipient(self, recipient_id: int) -> Recipient | None:
        result = await self.session.execute(select(Recipient).where(Recipient.id == recipient_id))
        return result.scalar_one_or_none()

    async def get_recipient_by_email(self, email: str) -> Recipient | None:
        result = await self.session.execute(select(Recipient).where(Recipient.email == email))
        return result.scalar_one_or_none()

    async def create_recipient(self, *, email: str, name: str, hashed_password: str) -> Recipient | None:
        """Insert a recipient; None when the email is already registered."""
        recipient = Recipient(email=email, name=name, hashed_password=hashed_password)
        self.session.add(recipient)
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            return None
        await self.session.refresh(recipient)
        return recipient

    # ── Wishlists (owner scoped) ────────────────────────────────────────────

    async def list_wishlists(self, owner_id: int) -> list[Wishlist]:
        result = await self.session.execute(
            select(Wishlist)
            .where(Wishlist.owner_id == owner_id)
            .order_by(Wishlist.created_at.desc(), Wishlist.id.desc())
        )
        return list(result.scalars().unique())

    async def get_owned_wishlist(self, owner_id: int, wishlist_id: int) -> Wishlist | None:
        result = await self.session.execute(
            select(Wishlist).where(Wishlist.id == wishlist_id, Wishlist.owner_id == owner_id)
        )
        return result.scalar_one_or_none()

    async def share_token_taken(self, token: str) -> bool:
        result = await self.session.execute(select(exists().where(Wishlist.share_token == token)))
        return bool(result.scalar())

    async def create_wishlist(
        self,
        *,
        owner_id: int,
        title: str,
        end_date: date,
        share_token: str,
        created_at: datetime,
    ) -> Wishlist | None:
        """Insert a wishlist; None when the share token was taken concurrently."""
        wishlist = Wishlist(
            owner_id=owner_id,
            title=title,
            end_date=end_date,
            share_token=share_token,
            created_at=created_at,
        )
        self.session.add(wishlist)
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            logger.warning("Wishlist insert rejected share_token=%s", share_token)
            return None
        await self.session.refresh(wishlist)
        return wishlist

    async def update_wishlist(
        self,
        wishlist: Wishlist,
        *,
        title: str | None = None,
        end_date: date | None = None,
    ) -> Wishlist:
        if title:
            wishlist.title = title
        if end_date:
            wishlist.end_date = end_date
        await self.session.commit()
        await self.session.refresh(wishlist)
        return wishlist

    async def reload(self, instance: object) -> None:
        await self.session.refresh(instance)

    async def delete_wishlist(self, wishlist: Wishlist) -> None:
        await self.session.delete(wishlist)
        await self.session.commit()

    # ── Items ───────────────────────────────────────────────────────────────

    async def list_items(self, wishlist_id: int) -> list[Item]:
        result = await self.session.execute(
            select(Item)
            .where(Item.wishlist_id == wishlist_id)
            .order_by(Item.created_at.asc(), Item.id.asc())
        )
        return list(result.scalars().unique())

    async def add_item(
        self,
        wishlist: Wishlist,
        *,
        name: str,
        description: str | None,
        link: str | None,
        created_at: datetime,
    ) -> Item:
        item = Item(
            wishlist_id=wishlist.id,
            name=name,
            description=description,
            link=link,
            created_at=created_at,
        )
        self.session.add(item)
        await self.session.commit()
        await self.session.refresh(item)
        return item

    async def get_owned_item(self, owner_id: int, item_id: int) -> Item | None:
        result = await self.session.execute(
            select(Item)
            .join(Wishlist, Item.wishlist_id == Wishlist.id)
            .where(Item.id == item_id, Wishlist.owner_id == owner_id)
        )
        return result.scalar_one_or_none()

    async def update_item(self, item: Item, changes: dict[str, str | None]) -> Item:
        if changes.get("name"):
            item.name = changes["name"]
        if "description" in changes:
            item.description = changes["description"]
        if "link" in changes:
            item.link = changes["link"]
        await self.session.commit()
        await self.session.refresh(item)
        return item

    async def delete_item(self, item: Item) -> None:
        await self.session.delete(item)
        await self.session.commit()

    # ── Shared access ───────────────────────────────────────────────────────

    async def get_by_share_token(self, token: str) -> Wishlist | None:
        result = await self.session.execute(
            select(Wishlist)
            .options(selectinload(Wishlist.owner))
            .where(Wishlist.share_token == token)
        )
        return result.scalar_one_or_none()

    async def get_item_in_wishlist(self, wishlist_id: int, item_id: int) -> Item | None:
        result = await self.session.execute(
            select(Item).where(Item.id == item_id, Item.wishlist_id == wishlist_id)
        )
        return result.scalar_one_or_none()

    async def item_exists(self, item_id: int) -> bool:
        result = await self.session.execute(select(exists().where(Item.id == item_id)))
        return bool(result.scalar())

    async def claim_exists(self, item_id: int) -> bool:
        result = await self.session.execute(select(exists().where(Claim.item_id == item_id)))
        return bool(result.scalar())

    # ── Claims ──────────────────────────────────────────────────────────────

    async def _find_or_add_gifter(self, name: str, email: str | None) -> Gifter:
        email_match = Gifter.email.is_(None) if email is None else Gifter.email == email
        result = await self.session.execute(
            select(Gifter).where(Gifter.name == name, email_match).order_by(Gifter.id.asc()).limit(1)
        )
        gifter = result.scalar_one_or_none()
        if gifter is None:
            gifter = Gifter(name=name, email=email)
            self.session.add(gifter)
            await self.session.flush()
        return gifter

    async def claim_if_absent(
        self,
        *,
        item_id: int,
        gifter_name: str,
        gifter_email: str | None,
        claimed_at: datetime,
    ) -> Claim | None:
        """Bind the item to a gifter in one transaction.

        Returns None when the store rejects the insert, i.e. the item already
        has a claim (or vanished mid-flight). The caller decides which.
        """
        try:
            gifter = await self._find_or_add_gifter(gifter_name, gifter_email)
            claim = Claim(item_id=item_id, gifter_id=gifter.id, claimed_at=claimed_at)
            self.session.add(claim)
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            logger.info("Claim insert rejected by store item_id=%s", item_id)
            return None
        return claim

    async def claims_for_wishlist(self, wishlist_id: int) -> dict[int, ClaimView]:
        result = await self.session.execute(
            select(Claim.item_id, Gifter.name, Gifter.email, Claim.claimed_at)
            .join(Item, Claim.item_id == Item.id)
            .join(Gifter, Claim.gifter_id == Gifter.id)
            .where(Item.wishlist_id == wishlist_id)
        )
        return {
            item_id: ClaimView(
                item_id=item_id,
                gifter_name=gifter_name,
                gifter_email=gifter_email,
                claimed_at=claimed_at,
            )
            for item_id, gifter_name, gifter_email, claimed_at in result.all()
        }

    async def claimed_items(self, wishlist_id: int) -> list[ClaimedItemRow]:
        result = await self.session.execute(
            select(Item.name, Item.description, Gifter.name, Gifter.email, Claim.claimed_at)
            .join(Claim, Claim.item_id == Item.id)
            .join(Gifter, Claim.gifter_id == Gifter.id)
            .where(Item.wishlist_id == wishlist_id)
            .order_by(Gifter.name.asc(), Claim.claimed_at.asc(), Claim.id.asc())
        )
        return [
            ClaimedItemRow(
                item_name=item_name,
                description=description,
                gifter_name=gifter_name,
                gifter_email=gifter_email,
                claimed_at=claimed_at,
            )
            for item_name, description, gifter_name, gifter_email, claimed_at in result.all()
        ]
