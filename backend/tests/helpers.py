from uuid import uuid4

from fastapi.testclient import TestClient


PASSWORD = "SecurePass123!"


def register(client: TestClient, name: str = "Alice") -> dict:
    """Register a fresh recipient; the client keeps the session cookie."""
    email = f"user-{uuid4().hex}@example.com"
    res = client.post(
        "/api/auth/register",
        json={"email": email, "password": PASSWORD, "name": name},
    )
    assert res.status_code == 201, res.text
    return res.json()


def create_wishlist(client: TestClient, title: str = "Christmas 2025", end_date: str | None = "2025-12-25") -> dict:
    payload: dict = {"title": title}
    if end_date is not None:
        payload["end_date"] = end_date
    res = client.post("/api/wishlists", json=payload)
    assert res.status_code == 201, res.text
    return res.json()


def add_item(client: TestClient, wishlist_id: int, name: str, **fields) -> dict:
    res = client.post(f"/api/wishlists/{wishlist_id}/items", json={"name": name, **fields})
    assert res.status_code == 201, res.text
    return res.json()


def claim(client: TestClient, token: str, item_id: int, name: str | None = "Bob", email: str | None = None):
    payload: dict = {}
    if name is not None:
        payload["gifter_name"] = name
    if email is not None:
        payload["gifter_email"] = email
    return client.post(f"/api/shared/{token}/claim/{item_id}", json=payload)
