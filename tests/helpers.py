"""Shared request builders for the API tests."""


def signup_payload(username="alice", email="alice@example.com", password="s3cret!", **overrides):
    payload = {
        "Username": username,
        "Name": "Alice Liddell",
        "Email": email,
        "Password": password,
        "Gender": "Female",
        "Phone_Number": "9876543210",
        "id": f"ext-{username}",
    }
    payload.update(overrides)
    return payload


def signup(client, **kwargs):
    response = client.post("/signup", json=signup_payload(**kwargs))
    assert response.status_code == 200
    return response.json()


def add_item(client, username="alice", product_id=101, quantity=1, **overrides):
    payload = {
        "username": username,
        "productId": product_id,
        "name": f"Product {product_id}",
        "price": 499.0,
        "productImg": f"/static/img/{product_id}.png",
        "quantity": quantity,
    }
    payload.update(overrides)
    return client.post("/add-To-Cart", json=payload).json()
