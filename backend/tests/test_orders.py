"""Order history tests, including totals that stay fixed after the catalog changes."""


def _place(client, user_id, item):
    return client.post("/checkout", json={"userId": user_id, "cartItemIds": [item.id]}).json["orderId"]


class TestOrderHistory:
    def test_user_orders_newest_first(self, client, user, make_product, add_to_cart):
        product = make_product(price_cents=1_000, stock=10, product_link="/p/mug")
        first = _place(client, user.id, add_to_cart(user.id, product.id, quantity=1))
        second = _place(client, user.id, add_to_cart(user.id, product.id, quantity=3))

        orders = client.get(f"/orders/user/{user.id}").json

        assert [o["order_id"] for o in orders] == [second, first]
        assert orders[0]["final_total_cents"] == 3_000
        assert orders[0]["payment_method"] == "cod"
        assert orders[0]["shipping_address"] == "12 7 C Garden Town Lahore Pakistan"
        assert orders[0]["items"][0]["product_link"] == "/p/mug"
        assert orders[0]["items"][0]["unit_price_cents"] == 1_000

    def test_other_users_orders_hidden(self, client, make_user, make_product, add_to_cart):
        buyer, browser = make_user(), make_user()
        _place(client, buyer.id, add_to_cart(buyer.id, make_product().id))

        assert client.get(f"/orders/user/{browser.id}").json == []

    def test_purchase_check(self, client, user, make_product, add_to_cart):
        bought = make_product(stock=5)
        not_bought = make_product()
        _place(client, user.id, add_to_cart(user.id, bought.id))
        _place(client, user.id, add_to_cart(user.id, bought.id))

        assert client.get(f"/orders/user/{user.id}/product/{bought.id}").json == {
            "hasPurchased": True, "purchaseCount": 2,
        }
        assert client.get(f"/orders/user/{user.id}/product/{not_bought.id}").json == {
            "hasPurchased": False, "purchaseCount": 0,
        }

    def test_totals_survive_price_and_voucher_changes(
        self, client, admin_headers, user, make_product, add_to_cart, make_voucher
    ):
        product = make_product(price_cents=1_000, stock=5)
        voucher = make_voucher(code="TAKE5", discount_value=500)
        resp = client.post("/checkout", json={
            "userId": user.id,
            "cartItemIds": [add_to_cart(user.id, product.id, quantity=2).id],
            "voucherId": voucher.id,
        })
        assert resp.json["finalTotal"] == 1_500

        assert client.patch(
            f"/products/{product.id}", headers=admin_headers, json={"price_cents": 4_000}
        ).status_code == 200
        assert client.delete(f"/admin/vouchers/{voucher.id}", headers=admin_headers).status_code == 200

        [order] = client.get(f"/orders/user/{user.id}").json
        assert order["total_price_cents"] == 2_000
        assert order["total_cents"] == 1_500
        assert order["final_total_cents"] == 1_500
        assert order["items"][0]["subtotal_cents"] == 2_000
        assert order["items"][0]["unit_price_cents"] == 1_000
