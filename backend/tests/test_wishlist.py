"""Wishlist endpoint tests."""


class TestWishlist:
    def test_add_is_idempotent(self, client, user, make_product):
        product = make_product()
        body = {"userId": user.id, "productId": product.id}

        first = client.post("/wishlist/add", json=body)
        second = client.post("/wishlist/add", json=body)

        assert first.status_code == 201
        assert second.status_code == 200
        assert first.json["wishlistItemId"] == second.json["wishlistItemId"]
        assert len(client.get(f"/wishlist/{user.id}").json) == 1

    def test_listing_carries_product_fields(self, client, user, make_product):
        product = make_product(name="Tea Set", price_cents=3_000, discount_price_cents=2_500)
        client.post("/wishlist/add", json={"userId": user.id, "productId": product.id})

        [entry] = client.get(f"/wishlist/{user.id}").json

        assert entry["name"] == "Tea Set"
        assert entry["effective_price_cents"] == 2_500
        assert entry["added_at"] is not None

    def test_check_and_remove(self, client, user, make_product):
        product = make_product()
        client.post("/wishlist/add", json={"userId": user.id, "productId": product.id})

        assert client.get(f"/wishlist/check/{user.id}/{product.id}").json == {"inWishlist": True}
        assert client.delete(f"/wishlist/user/{user.id}/product/{product.id}").status_code == 200
        assert client.get(f"/wishlist/check/{user.id}/{product.id}").json == {"inWishlist": False}

    def test_remove_missing(self, client, user, make_product):
        resp = client.delete(f"/wishlist/user/{user.id}/product/{make_product().id}")
        assert resp.status_code == 404
        assert resp.json["error"] == "Product not in wishlist"

    def test_empty_wishlist(self, client, user):
        assert client.get(f"/wishlist/{user.id}").json == []

    def test_unknown_product(self, client, user):
        resp = client.post("/wishlist/add", json={"userId": user.id, "productId": 4040})
        assert resp.status_code == 404
