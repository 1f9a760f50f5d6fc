"""Customer cart: adding, merging, updating and removing lines."""

from tests.conftest import auth_headers


async def _add(client, customer, food_item, quantity=1, restaurant_id=None):
    return await client.post(
        "/api/customer/cart/add",
        json={
            "foodItemId": food_item.id,
            "quantity": quantity,
            "priceAtTimeOfAddition": food_item.price,
            "restaurantId": restaurant_id if restaurant_id is not None else food_item.restaurant_id,
        },
        headers=auth_headers(customer),
    )


async def test_empty_cart_is_created_on_read(client, customer):
    response = await client.get("/api/customer/cart", headers=auth_headers(customer))
    assert response.status_code == 200
    body = response.json()
    assert body["userId"] == customer.id
    assert body["items"] == []


async def test_add_merges_same_food_item(client, customer, restaurant, make_food_item):
    food_item = await make_food_item(restaurant)

    first = await _add(client, customer, food_item, quantity=2)
    assert first.status_code == 200
    assert first.json()["cartItemCount"] == 1

    second = await _add(client, customer, food_item, quantity=3)
    assert second.json()["cartItemCount"] == 1

    cart = (await client.get("/api/customer/cart", headers=auth_headers(customer))).json()
    assert len(cart["items"]) == 1
    line = cart["items"][0]
    assert line["quantity"] == 5
    assert line["foodItem"]["title"] == food_item.title
    assert line["foodItem"]["restaurantTitle"] == restaurant.title
    assert line["restaurant"]["id"] == restaurant.id


async def test_cart_may_span_restaurants(client, customer, restaurant, make_restaurant, make_food_item):
    other = await make_restaurant(title="Pasta Point")
    await _add(client, customer, await make_food_item(restaurant))
    response = await _add(client, customer, await make_food_item(other, title="Penne"))
    assert response.json()["cartItemCount"] == 2


async def test_add_unknown_food_item(client, customer, restaurant):
    response = await client.post(
        "/api/customer/cart/add",
        json={"foodItemId": 999, "quantity": 1, "priceAtTimeOfAddition": 1, "restaurantId": restaurant.id},
        headers=auth_headers(customer),
    )
    assert response.status_code == 404


async def test_add_with_wrong_restaurant(client, customer, restaurant, make_restaurant, make_food_item):
    other = await make_restaurant(title="Elsewhere")
    food_item = await make_food_item(restaurant)
    response = await _add(client, customer, food_item, restaurant_id=other.id)
    assert response.status_code == 400


async def test_add_rejects_zero_quantity(client, customer, restaurant, make_food_item):
    food_item = await make_food_item(restaurant)
    response = await _add(client, customer, food_item, quantity=0)
    assert response.status_code == 400


async def test_update_and_remove_line(client, customer, restaurant, make_food_item):
    food_item = await make_food_item(restaurant)
    await _add(client, customer, food_item)
    cart = (await client.get("/api/customer/cart", headers=auth_headers(customer))).json()
    line_id = cart["items"][0]["id"]

    response = await client.put(
        f"/api/customer/cart/{line_id}", json={"quantity": 4}, headers=auth_headers(customer)
    )
    assert response.status_code == 200
    cart = (await client.get("/api/customer/cart", headers=auth_headers(customer))).json()
    assert cart["items"][0]["quantity"] == 4

    response = await client.delete(f"/api/customer/cart/{line_id}", headers=auth_headers(customer))
    assert response.status_code == 200
    assert response.json()["cartItemCount"] == 0


async def test_update_unknown_line(client, customer):
    response = await client.put("/api/customer/cart/12345", json={"quantity": 2}, headers=auth_headers(customer))
    assert response.status_code == 404
    assert response.json()["message"] == "Cart item not found."


async def test_cannot_touch_another_customers_line(client, customer, make_user, restaurant, make_food_item):
    other = await make_user()
    food_item = await make_food_item(restaurant)
    await _add(client, other, food_item)
    cart = (await client.get("/api/customer/cart", headers=auth_headers(other))).json()
    line_id = cart["items"][0]["id"]

    response = await client.delete(f"/api/customer/cart/{line_id}", headers=auth_headers(customer))
    assert response.status_code == 404


async def test_clear_cart(client, customer, restaurant, make_food_item):
    response = await client.delete("/api/customer/cart/clear", headers=auth_headers(customer))
    assert response.json()["message"] == "Cart is already empty."

    await _add(client, customer, await make_food_item(restaurant))
    response = await client.delete("/api/customer/cart/clear", headers=auth_headers(customer))
    assert response.status_code == 200
    assert response.json()["message"] == "Cart cleared successfully."

    cart = (await client.get("/api/customer/cart", headers=auth_headers(customer))).json()
    assert cart["items"] == []


async def test_deleted_food_item_leaves_unlinked_line(client, customer, owner, restaurant, make_food_item):
    food_item = await make_food_item(restaurant)
    await _add(client, customer, food_item)

    response = await client.delete(f"/api/restaurant/items/{food_item.id}", headers=auth_headers(owner))
    assert response.status_code == 200

    cart = (await client.get("/api/customer/cart", headers=auth_headers(customer))).json()
    assert len(cart["items"]) == 1
    assert cart["items"][0]["foodItem"] is None
    assert cart["items"][0]["foodItemId"] is None
