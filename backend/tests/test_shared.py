"""
Gifter access through share tokens: view, availability check and claim.
"""
from datetime import datetime
from uuid import uuid4
import asyncio

import pytest
from httpx import ASGITransport, AsyncClient

from helpers import add_item, claim, create_wishlist, register


def _shared_wishlist(client, *item_names, end_date="2025-12-25"):
    register(client)
    wishlist = create_wishlist(client, end_date=end_date)
    items = [add_item(client, wishlist["id"], name) for name in item_names]
    return wishlist, items


class TestSharedView:

    def test_view_without_login(self, client, make_client):
        wishlist, (item,) = _shared_wishlist(client, "Scarf")
        gifter = make_client()

        response = gifter.get(f"/api/shared/{wishlist['share_token']}")

        assert response.status_code == 200
        assert response.headers["cache-control"] == "no-store"
        data = response.json()
        assert data["id"] == wishlist["id"]
        assert data["title"] == "Christmas 2025"
        assert data["recipient_name"] == "Alice"
        assert data["end_date"] == "2025-12-25"
        assert data["past_end_date"] is False
        assert data["total_items"] == 1
        assert data["claimed_count"] == 0
        assert data["items"][0]["id"] == item["id"]
        assert data["items"][0]["claimed"] is False

    def test_gifters_see_who_claimed(self, client, make_client):
        wishlist, (scarf, book) = _shared_wishlist(client, "Scarf", "Book")
        gifter = make_client()
        assert claim(gifter, wishlist["share_token"], scarf["id"], "Bob", "bob@example.com").status_code == 200

        data = make_client().get(f"/api/shared/{wishlist['share_token']}").json()

        by_id = {item["id"]: item for item in data["items"]}
        assert by_id[scarf["id"]]["claimed"] is True
        assert by_id[scarf["id"]]["claimed_by_name"] == "Bob"
        assert by_id[scarf["id"]]["claimed_by_email"] == "bob@example.com"
        assert by_id[book["id"]]["claimed"] is False
        assert data["claimed_count"] == 1

    def test_unknown_token(self, client):
        response = client.get("/api/shared/lonely-penguin-7")
        assert response.status_code == 404
        assert response.json()["code"] == "not_found"

    def test_owner_cannot_peek(self, client):
        wishlist, _ = _shared_wishlist(client, "Scarf")

        response = client.get(f"/api/shared/{wishlist['share_token']}")

        assert response.status_code == 403
        assert response.json()["code"] == "forbidden"
        assert "no peeking" in response.json()["detail"]

    def test_other_recipient_may_view(self, client, make_client):
        wishlist, _ = _shared_wishlist(client, "Scarf")
        other = make_client()
        register(other, name="Eve")

        assert other.get(f"/api/shared/{wishlist['share_token']}").status_code == 200

    def test_items_hidden_after_end_date(self, client, make_client, clock):
        wishlist, (item,) = _shared_wishlist(client, "Scarf")
        gifter = make_client()
        claim(gifter, wishlist["share_token"], item["id"])
        clock.set(datetime(2025, 12, 26, 0, 0, 1))

        data = gifter.get(f"/api/shared/{wishlist['share_token']}").json()

        assert data["past_end_date"] is True
        assert data["items"] == []
        assert data["total_items"] == 1
        assert data["claimed_count"] == 1

    def test_items_still_visible_on_last_second(self, client, make_client, clock):
        wishlist, _ = _shared_wishlist(client, "Scarf")
        clock.set(datetime(2025, 12, 25, 23, 59, 59))

        data = make_client().get(f"/api/shared/{wishlist['share_token']}").json()

        assert data["past_end_date"] is False
        assert len(data["items"]) == 1


class TestAvailabilityCheck:

    def test_available_then_taken(self, client, make_client):
        wishlist, (item,) = _shared_wishlist(client, "Scarf")
        gifter = make_client()
        url = f"/api/shared/{wishlist['share_token']}/check/{item['id']}"

        assert gifter.get(url).json() == {"available": True}
        claim(gifter, wishlist["share_token"], item["id"])
        assert gifter.get(url).json() == {"available": False}

    def test_unknown_item(self, client, make_client):
        wishlist, _ = _shared_wishlist(client, "Scarf")
        response = make_client().get(f"/api/shared/{wishlist['share_token']}/check/999999")
        assert response.status_code == 404


class TestClaim:

    def test_claim_success(self, client, make_client, clock):
        wishlist, (item,) = _shared_wishlist(client, "Scarf")
        clock.set(datetime(2025, 12, 24, 18, 30))

        response = claim(make_client(), wishlist["share_token"], item["id"], "Bob")

        assert response.status_code == 200
        assert response.json() == {
            "message": "Item claimed successfully!",
            "item_id": item["id"],
            "claimed_at": "2025-12-24T18:30:00",
        }

    def test_second_claim_conflicts(self, client, make_client):
        wishlist, (item,) = _shared_wishlist(client, "Scarf")
        assert claim(make_client(), wishlist["share_token"], item["id"], "Bob").status_code == 200

        response = claim(make_client(), wishlist["share_token"], item["id"], "Carol")

        assert response.status_code == 409
        assert response.json() == {"detail": "This item has already been claimed", "code": "conflict"}

    def test_name_required(self, client, make_client):
        wishlist, (item,) = _shared_wishlist(client, "Scarf")

        response = claim(make_client(), wishlist["share_token"], item["id"], name="  ")

        assert response.status_code == 400
        assert response.json() == {"detail": "Your name is required", "code": "invalid_input"}

    def test_missing_name_reported_before_email_format(self, client, make_client):
        wishlist, (item,) = _shared_wishlist(client, "Scarf")

        response = claim(make_client(), wishlist["share_token"], item["id"], name="", email="bob")

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_input"

    def test_email_stored_as_given(self, client, make_client, clock):
        wishlist, (item,) = _shared_wishlist(client, "Scarf")
        gifter = make_client()

        assert claim(gifter, wishlist["share_token"], item["id"], "Bob", " Bob@Example.COM ").status_code == 200

        shared = gifter.get(f"/api/shared/{wishlist['share_token']}").json()
        assert shared["items"][0]["claimed_by_email"] == "Bob@Example.COM"
        clock.set(datetime(2025, 12, 26, 8, 0))
        owner_view = client.get(f"/api/wishlists/{wishlist['id']}").json()
        assert owner_view["items"][0]["claim"]["gifter_email"] == "Bob@Example.COM"

    def test_free_form_email_accepted(self, client, make_client):
        wishlist, (item,) = _shared_wishlist(client, "Scarf")
        response = claim(make_client(), wishlist["share_token"], item["id"], "Bob", "bob at home")
        assert response.status_code == 200

    def test_empty_email_accepted(self, client, make_client):
        wishlist, (item,) = _shared_wishlist(client, "Scarf")
        gifter = make_client()

        assert claim(gifter, wishlist["share_token"], item["id"], "Bob", "").status_code == 200
        data = gifter.get(f"/api/shared/{wishlist['share_token']}").json()
        assert data["items"][0]["claimed_by_email"] is None

    def test_claim_after_end_date_expired(self, client, make_client, clock):
        wishlist, (item,) = _shared_wishlist(client, "Scarf")
        clock.set(datetime(2025, 12, 26, 0, 0, 0))

        response = claim(make_client(), wishlist["share_token"], item["id"])

        assert response.status_code == 410
        assert response.json()["code"] == "expired"

    def test_claim_on_last_second(self, client, make_client, clock):
        wishlist, (item,) = _shared_wishlist(client, "Scarf")
        clock.set(datetime(2025, 12, 25, 23, 59, 59))

        assert claim(make_client(), wishlist["share_token"], item["id"]).status_code == 200

    def test_claim_unknown_token(self, client):
        assert claim(client, "lonely-penguin-7", 1).status_code == 404

    def test_claim_item_of_other_wishlist(self, client, make_client):
        wishlist, _ = _shared_wishlist(client, "Scarf")
        other = make_client()
        _, (foreign,) = _shared_wishlist(other, "Coal")

        response = claim(make_client(), wishlist["share_token"], foreign["id"])

        assert response.status_code == 404
        assert response.json()["detail"] == "Item not found"


class TestConcurrentHttpClaims:

    @pytest.mark.anyio
    async def test_one_winner_over_http(self, app, store_factory, clock):
        async with store_factory() as store:
            owner = await store.create_recipient(
                email=f"owner-{uuid4().hex}@example.com", name="Alice", hashed_password="x"
            )
            wishlist = await store.create_wishlist(
                owner_id=owner.id,
                title="Christmas 2025",
                end_date=datetime(2025, 12, 25).date(),
                share_token="merry-elf-7",
                created_at=clock(),
            )
            item = await store.add_item(wishlist, name="Scarf", description=None, link=None, created_at=clock())

        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as http:
            responses = await asyncio.gather(
                *[
                    http.post(
                        f"/api/shared/merry-elf-7/claim/{item.id}",
                        json={"gifter_name": f"Gifter {n}"},
                    )
                    for n in range(6)
                ]
            )
            available = await http.get(f"/api/shared/merry-elf-7/check/{item.id}")

        statuses = sorted(r.status_code for r in responses)
        assert statuses == [200, 409, 409, 409, 409, 409]
        assert available.json() == {"available": False}
