"""Orders HTTP API."""
import uuid

import pytest


@pytest.fixture
def mouse(make_product):
    return make_product(name="Mouse", price="29.99", available_count=10)


def order_body(*pairs, customer_id=None):
    return {
        "customerId": customer_id or str(uuid.uuid4()),
        "products": [{"id": product_id, "quantity": quantity} for product_id, quantity in pairs],
    }


def test_create_order(client, mouse, stock_of):
    customer_id = str(uuid.uuid4())

    response = client.post("/orders", json=order_body((mouse.id, 3), customer_id=customer_id))

    assert response.status_code == 201
    data = response.json()
    assert uuid.UUID(data["id"])
    assert data["customerId"] == customer_id
    assert data["status"] == "PENDING"
    assert data["orderTotal"] == pytest.approx(89.97)
    assert "orderCreatedDate" in data
    assert "orderUpdatedDate" in data
    assert data["products"] == [
        {"id": mouse.id, "quantity": 3, "name": "Mouse", "price": pytest.approx(29.99)}
    ]
    assert stock_of(mouse.id) == 7


def test_create_order_insufficient_stock(client, make_product, stock_of):
    product = make_product(name="Gizmo", available_count=5)

    response = client.post("/orders", json=order_body((product.id, 100)))

    assert response.status_code == 400
    assert response.json()["detail"] == 'Insufficient stock for product "Gizmo". Available: 5, Requested: 100'
    assert stock_of(product.id) == 5


def test_create_order_unknown_product(client, mouse, stock_of):
    response = client.post("/orders", json=order_body((mouse.id, 1), (999, 1)))

    assert response.status_code == 404
    assert response.json()["detail"] == "Product with ID 999 not found"
    assert stock_of(mouse.id) == 10
    assert client.get("/orders").json() == []


@pytest.mark.parametrize("body", [
    {"customerId": str(uuid.uuid4()), "products": []},
    {"customerId": str(uuid.uuid4()), "products": [{"id": 1, "quantity": 0}]},
    {"customerId": str(uuid.uuid4()), "products": [{"id": 1, "quantity": -2}]},
    {"customerId": str(uuid.uuid4()), "products": [{"id": 0, "quantity": 1}]},
    {"customerId": "not-a-uuid", "products": [{"id": 1, "quantity": 1}]},
    {"products": [{"id": 1, "quantity": 1}]},
])
def test_create_order_rejects_malformed_requests(client, mouse, stock_of, body):
    response = client.post("/orders", json=body)

    assert response.status_code == 422
    assert stock_of(mouse.id) == 10


def test_get_order(client, mouse):
    created = client.post("/orders", json=order_body((mouse.id, 2))).json()

    response = client.get(f"/orders/{created['id']}")

    assert response.status_code == 200
    assert response.json() == created


def test_get_order_not_found(client):
    missing = str(uuid.uuid4())

    response = client.get(f"/orders/{missing}")

    assert response.status_code == 404
    assert response.json()["detail"] == f"Order with ID {missing} not found"


def test_get_order_malformed_id(client):
    assert client.get("/orders/12345").status_code == 422


def test_list_orders_newest_first(client, mouse):
    first = client.post("/orders", json=order_body((mouse.id, 1))).json()
    second = client.post("/orders", json=order_body((mouse.id, 1))).json()

    response = client.get("/orders")

    assert response.status_code == 200
    assert [order["id"] for order in response.json()] == [second["id"], first["id"]]


def test_order_keeps_price_after_product_price_change(client, mouse):
    created = client.post("/orders", json=order_body((mouse.id, 3))).json()

    client.patch(f"/products/{mouse.id}", json={"price": 100})

    fetched = client.get(f"/orders/{created['id']}").json()
    assert fetched["orderTotal"] == pytest.approx(89.97)
    assert fetched["products"][0]["price"] == pytest.approx(29.99)


@pytest.mark.parametrize("field", ["id", "quantity"])
def test_create_order_rejects_values_beyond_integer_column(client, mouse, stock_of, field):
    body = order_body((mouse.id, 1))
    body["products"][0][field] = 2**63

    response = client.post("/orders", json=body)

    assert response.status_code == 422
    assert stock_of(mouse.id) == 10
