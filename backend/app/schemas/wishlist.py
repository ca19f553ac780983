from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator


def _strip_or_none(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.strip()
    return normalized or None


class WishlistCreate(BaseModel):
    title: str = Field(min_length=1, max_length=120)
    end_date: date | None = None

    @field_validator("title")
    @classmethod
    def _wishlist_title_strip(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("Title is required")
        return normalized


class WishlistUpdate(BaseModel):
    title: str | None = Field(default=None, max_length=120)
    end_date: date | None = None

    @field_validator("title")
    @classmethod
    def _wishlist_title_strip(cls, value: str | None) -> str | None:
        return _strip_or_none(value)


class ItemCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=2000)
    link: str | None = Field(default=None, max_length=2048)

    @field_validator("name")
    @classmethod
    def _name_strip(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("Item name is required")
        return normalized

    @field_validator("description", "link")
    @classmethod
    def _normalize_optional(cls, value: str | None) -> str | None:
        return _strip_or_none(value)


class ItemUpdate(BaseModel):
    name: str | None = Field(default=None, max_length=255)
    description: str | None = Field(default=None, max_length=2000)
    link: str | None = Field(default=None, max_length=2048)

    @field_validator("name", "description", "link")
    @classmethod
    def _normalize_optional(cls, value: str | None) -> str | None:
        return _strip_or_none(value)


class ClaimCreate(BaseModel):
    gifter_name: str | None = Field(default=None, max_length=120)
    gifter_email: str | None = Field(default=None, max_length=320)

    @field_validator("gifter_name", mode="before")
    @classmethod
    def _gifter_name_strip(cls, value: str | None) -> str | None:
        if isinstance(value, str):
            return _strip_or_none(value)
        return value

    @field_validator("gifter_email", mode="before")
    @classmethod
    def _gifter_email_absent(cls, value: str | None) -> str | None:
        # "" and whitespace mean the same thing as a missing email
        if isinstance(value, str):
            return _strip_or_none(value)
        return value


class WishlistPublic(BaseModel):
    id: int
    title: str
    end_date: date
    share_token: str
    created_at: datetime

    class Config:
        from_attributes = True


class ItemPublic(BaseModel):
    id: int
    wishlist_id: int
    name: str
    description: str | None
    link: str | None
    created_at: datetime

    class Config:
        from_attributes = True


class ClaimPublic(BaseModel):
    gifter_name: str
    gifter_email: str | None = None
    claimed_at: datetime


class OwnerItemPublic(ItemPublic):
    claim: ClaimPublic | None = None


class OwnerWishlistPublic(WishlistPublic):
    items: list[OwnerItemPublic]
    past_end_date: bool


class SharedItemPublic(BaseModel):
    id: int
    name: str
    description: str | None
    link: str | None
    created_at: datetime
    claimed: bool
    claimed_by_name: str | None = None
    claimed_by_email: str | None = None


class SharedWishlistPublic(BaseModel):
    id: int
    title: str
    recipient_name: str
    end_date: date
    past_end_date: bool
    items: list[SharedItemPublic]
    total_items: int
    claimed_count: int


class AvailabilityPublic(BaseModel):
    available: bool


class ClaimResultPublic(BaseModel):
    message: str = "Item claimed successfully!"
    item_id: int
    claimed_at: datetime


class ThankYouEntry(BaseModel):
    item_name: str
    description: str | None
    claimed_at: datetime


class ThankYouPublic(BaseModel):
    wishlist_title: str
    end_date: date
    gifts: dict[str, list[ThankYouEntry]]
