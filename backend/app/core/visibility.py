"""Deadline-gated visibility of claim data.

One predicate, ``reveal_claims``, decides what the two audiences see:

* the owner sees no claim data until the gate opens, then sees who claimed what;
* gifters see live claim state while the gate is closed, and nothing once it
  opens (the wishlist is closed to them).

Everything here is pure: no storage, no request objects, no clock reads.
"""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum
from typing import Protocol

from app.schemas.wishlist import (
    ClaimPublic,
    OwnerItemPublic,
    SharedItemPublic,
    ThankYouEntry,
)


END_OF_DAY = time(23, 59, 59)


class ViewerRole(str, Enum):
    OWNER = "owner"
    GIFTER = "gifter"


class ItemLike(Protocol):
    id: int
    wishlist_id: int
    name: str
    description: str | None
    link: str | None
    created_at: datetime


@dataclass(frozen=True)
class ClaimView:
    item_id: int
    gifter_name: str
    gifter_email: str | None
    claimed_at: datetime


@dataclass(frozen=True)
class ClaimedItemRow:
    item_name: str
    description: str | None
    gifter_name: str
    gifter_email: str | None
    claimed_at: datetime


def end_of_day(end_date: date) -> datetime:
    return datetime.combine(end_date, END_OF_DAY)


def reveal_claims(end_date: date, now: datetime, preview: bool = False) -> bool:
    """True once ``now`` is past 23:59:59 of ``end_date``, or when previewing."""
    return now > end_of_day(end_date) or bool(preview)


def _owner_item(item: ItemLike, claim: ClaimView | None, reveal: bool) -> OwnerItemPublic:
    claim_public = None
    if reveal and claim is not None:
        claim_public = ClaimPublic(
            gifter_name=claim.gifter_name,
            gifter_email=claim.gifter_email,
            claimed_at=claim.claimed_at,
        )
    return OwnerItemPublic(
        id=item.id,
        wishlist_id=item.wishlist_id,
        name=item.name,
        description=item.description,
        link=item.link,
        created_at=item.created_at,
        claim=claim_public,
    )


def _gifter_item(item: ItemLike, claim: ClaimView | None) -> SharedItemPublic:
    return SharedItemPublic(
        id=item.id,
        name=item.name,
        description=item.description,
        link=item.link,
        created_at=item.created_at,
        claimed=claim is not None,
        claimed_by_name=claim.gifter_name if claim else None,
        claimed_by_email=claim.gifter_email if claim else None,
    )


def project(
    items: Sequence[ItemLike],
    claims: Mapping[int, ClaimView],
    viewer_role: ViewerRole,
    reveal: bool,
) -> list[OwnerItemPublic] | list[SharedItemPublic]:
    """Project items and their claims for one audience."""
    if viewer_role is ViewerRole.OWNER:
        return [_owner_item(item, claims.get(item.id), reveal) for item in items]
    if reveal:
        return []
    return [_gifter_item(item, claims.get(item.id)) for item in items]


def gifter_key(name: str, email: str | None) -> str:
    return f"{name} ({email})" if email else name


def thank_you_summary(rows: Iterable[ClaimedItemRow]) -> dict[str, list[ThankYouEntry]]:
    """Group claimed items by gifter, keeping the order the rows arrive in."""
    grouped: dict[str, list[ThankYouEntry]] = {}
    for row in rows:
        grouped.setdefault(gifter_key(row.gifter_name, row.gifter_email), []).append(
            ThankYouEntry(
                item_name=row.item_name,
                description=row.description,
                claimed_at=row.claimed_at,
            )
        )
    return grouped
