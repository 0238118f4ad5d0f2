"""Integration tests for Cart API endpoints via TestClient."""

CUSTOMER = {"X-Customer-Id": "cust-api-001"}


class TestCartAPI:
    def test_cart_requires_a_customer(self, client):
        assert client.get("/cart").status_code == 401

    def test_empty_cart(self, client):
        response = client.get("/cart", headers=CUSTOMER)
        assert response.status_code == 200
        assert response.json() == {"session_id": None, "items": [], "total": 0.0}

    def test_add_item(self, client, create_product):
        product = create_product(size_stocks={"75CL": 4})
        response = client.post(
            "/cart/items",
            json={"product_id": product["product_id"], "size": "750ml", "quantity": 2},
            headers=CUSTOMER,
        )
        assert response.status_code == 201
        cart = response.json()
        assert cart["total"] == 40.0
        assert cart["items"][0]["size"] == "75CL"
        assert cart["items"][0]["available_stock"] == 4

    def test_add_beyond_stock_is_409(self, client, create_product):
        product = create_product(size_stocks={"75CL": 1})
        response = client.post(
            "/cart/items",
            json={"product_id": product["product_id"], "size": "75CL", "quantity": 2},
            headers=CUSTOMER,
        )
        assert response.status_code == 409
        body = response.json()
        assert body["error"] == "That's all we have for now"
        assert body["available"] == 1
        assert body["requested"] == 2
        assert body["size"] == "75CL"

    def test_invalid_size_is_400(self, client, create_product):
        product = create_product(size_stocks={"75CL": 1})
        response = client.post(
            "/cart/items",
            json={"product_id": product["product_id"], "size": "pint"},
            headers=CUSTOMER,
        )
        assert response.status_code == 400

    def test_unknown_product_is_404(self, client):
        response = client.post("/cart/items", json={"product_id": "missing"}, headers=CUSTOMER)
        assert response.status_code == 404

    def test_update_and_remove(self, client, create_product):
        product = create_product(stock=5)
        cart = client.post("/cart/items", json={"product_id": product["product_id"]}, headers=CUSTOMER).json()
        reservation_id = cart["items"][0]["reservation_id"]

        response = client.put(f"/cart/items/{reservation_id}", json={"quantity": 3}, headers=CUSTOMER)
        assert response.status_code == 200
        assert response.json()["items"][0]["quantity"] == 3

        response = client.delete(f"/cart/items/{reservation_id}", headers=CUSTOMER)
        assert response.status_code == 200
        assert response.json()["items"] == []

    def test_other_customers_item_is_403(self, client, create_product):
        product = create_product(stock=5)
        cart = client.post("/cart/items", json={"product_id": product["product_id"]}, headers=CUSTOMER).json()
        reservation_id = cart["items"][0]["reservation_id"]
        client.post("/cart/items", json={"product_id": product["product_id"]}, headers={"X-Customer-Id": "cust-x"})

        response = client.delete(f"/cart/items/{reservation_id}", headers={"X-Customer-Id": "cust-x"})
        assert response.status_code == 403

    def test_replace_and_clear(self, client, create_product):
        wine = create_product(size_stocks={"75CL": 5})
        box = create_product(name="Gift Box", price=5.0, stock=5)

        response = client.put(
            "/cart",
            json={
                "items": [
                    {"product_id": wine["product_id"], "size": "75CL", "quantity": 1},
                    {"product_id": box["product_id"], "quantity": 2},
                ]
            },
            headers=CUSTOMER,
        )
        assert response.status_code == 200
        assert response.json()["total"] == 30.0

        response = client.delete("/cart", headers=CUSTOMER)
        assert response.status_code == 200
        assert response.json()["items"] == []


class TestPricingAPI:
    def test_quote(self, client):
        body = {"items": [{"price": 25, "quantity": 2}], "is_trade_customer": True}
        response = client.post("/pricing/quote", json=body)
        assert response.status_code == 200
        assert response.json() == {
            "subtotal": 50.0, "discount": 10.0, "tax": 10.0, "shipping_fee": 4.99, "total": 54.99
        }

    def test_bad_price_is_400(self, client):
        response = client.post("/pricing/quote", json={"items": [{"price": "abc", "quantity": 1}]})
        assert response.status_code == 400
