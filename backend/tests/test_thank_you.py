"""
Thank-you list: gated by the end date, grouped by gifter.
"""
from datetime import datetime

from helpers import add_item, claim, create_wishlist, register


def _claimed_wishlist(client, make_client, clock):
    register(client)
    wishlist = create_wishlist(client, end_date="2025-12-25")
    scarf = add_item(client, wishlist["id"], "Scarf", description="Red")
    book = add_item(client, wishlist["id"], "Book")
    mug = add_item(client, wishlist["id"], "Mug")
    add_item(client, wishlist["id"], "Socks")

    token = wishlist["share_token"]
    clock.set(datetime(2025, 12, 3, 9, 0))
    assert claim(make_client(), token, mug["id"], "Bob", "bob@example.com").status_code == 200
    clock.set(datetime(2025, 12, 1, 9, 0))
    assert claim(make_client(), token, scarf["id"], "Bob", "bob@example.com").status_code == 200
    clock.set(datetime(2025, 12, 2, 9, 0))
    assert claim(make_client(), token, book["id"], "Ann").status_code == 200
    return wishlist


class TestThankYouList:

    def test_not_available_before_end_date(self, client, make_client, clock):
        wishlist = _claimed_wishlist(client, make_client, clock)
        clock.set(datetime(2025, 12, 25, 23, 59, 59))

        response = client.get(f"/api/wishlists/{wishlist['id']}/thankyou")

        assert response.status_code == 400
        assert response.json() == {
            "detail": "Thank you list not available until after 2025-12-25",
            "code": "not_yet_available",
        }

    def test_grouped_by_gifter_after_end_date(self, client, make_client, clock):
        wishlist = _claimed_wishlist(client, make_client, clock)
        clock.set(datetime(2025, 12, 26, 0, 0, 1))

        response = client.get(f"/api/wishlists/{wishlist['id']}/thankyou")

        assert response.status_code == 200
        data = response.json()
        assert data["wishlist_title"] == "Christmas 2025"
        assert data["end_date"] == "2025-12-25"
        assert list(data["gifts"]) == ["Ann", "Bob (bob@example.com)"]
        assert [g["item_name"] for g in data["gifts"]["Bob (bob@example.com)"]] == ["Scarf", "Mug"]
        assert data["gifts"]["Bob (bob@example.com)"][0]["description"] == "Red"
        assert data["gifts"]["Ann"] == [
            {"item_name": "Book", "description": None, "claimed_at": "2025-12-02T09:00:00"}
        ]

    def test_preview_before_end_date(self, client, make_client, clock):
        wishlist = _claimed_wishlist(client, make_client, clock)
        clock.set(datetime(2025, 12, 10, 12, 0))

        response = client.get(f"/api/wishlists/{wishlist['id']}/thankyou", params={"preview": 1})

        assert response.status_code == 200
        assert len(response.json()["gifts"]) == 2

    def test_empty_when_nothing_claimed(self, client, clock):
        register(client)
        wishlist = create_wishlist(client, end_date="2025-12-25")
        clock.set(datetime(2025, 12, 27, 8, 0))

        data = client.get(f"/api/wishlists/{wishlist['id']}/thankyou").json()

        assert data["gifts"] == {}

    def test_other_recipient_cannot_read(self, client, make_client, clock):
        wishlist = _claimed_wishlist(client, make_client, clock)
        clock.set(datetime(2025, 12, 27, 8, 0))
        other = make_client()
        register(other, name="Eve")

        assert other.get(f"/api/wishlists/{wishlist['id']}/thankyou").status_code == 404
