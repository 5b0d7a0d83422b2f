"""In-memory fake of the remote auction API, served via httpx.MockTransport."""

import json
from datetime import timedelta

import httpx

from src.au_common.clock import FakeClock


class FakeBackend:
    """Minimal stand-in for the remote API: products, auctions, bids."""

    def __init__(self, clock: FakeClock) -> None:
        end = clock.now() + timedelta(seconds=2)
        self.products = {
            "watch": {
                "id": "watch",
                "name": "watch",
                "description": "Vintage watch",
                "status": "unsold",
                "time": end.isoformat(),
                "auction_id": "spring",
            },
            "vase": {
                "id": "vase",
                "name": "vase",
                "description": "Ming vase",
                "status": "sold",
                "time": "not a timestamp",
            },
        }
        self.auctions = [
            {
                "id": "spring",
                "name": "Spring Sale",
                "valid_until": (clock.now() + timedelta(days=1)).isoformat(),
                "product_ids": ["watch"],
            }
        ]
        self.highest = {"watch": 100.0, "vase": 900.0}
        self.bids: list[dict[str, object]] = []
        self.requests: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.requests.append(f"{request.method} {path}")
        if path == "/products":
            return httpx.Response(200, json=list(self.products.values()))
        if path == "/admin/all_auctions":
            return httpx.Response(
                200, json={"total_auctions": len(self.auctions), "auctions": self.auctions}
            )
        if path == "/highest-bid":
            key = request.url.params["product_key"]
            return httpx.Response(200, json={"product": key, "highest_bid": self.highest.get(key)})
        if path == "/bid" and request.method == "POST":
            body = json.loads(request.content)
            key = body["product_name"]
            if body["bid_amount"] <= self.highest.get(key, 0):
                return httpx.Response(400, json={"error": "Bid must exceed current highest"})
            self.highest[key] = body["bid_amount"]
            self.bids.append(body)
            return httpx.Response(200, json={"message": "Bid placed"})
        return httpx.Response(404, json={"detail": "not found"})
