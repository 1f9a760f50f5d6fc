"""Restaurant-owner profile, menu management and the customer catalog."""

from foodhub.models import UserRole
from tests.conftest import auth_headers


async def test_identity_before_and_after_profile(client, owner):
    headers = auth_headers(owner)
    before = (await client.get("/api/restaurant/my-restaurant-id", headers=headers)).json()
    assert before["restaurantExists"] is False

    created = await client.post(
        "/api/restaurant/profile",
        json={
            "restaurant": {"title": "Spice Villa", "address": "12 Main St, Pune"},
            "owner": {"name": "Ravi"},
        },
        headers=headers,
    )
    assert created.status_code == 201
    body = created.json()
    assert body["restaurant"]["ownerId"] == owner.id
    assert body["restaurant"]["image"].startswith("https://")
    assert body["owner"]["name"] == "Ravi"

    after = (await client.get("/api/restaurant/my-restaurant-id", headers=headers)).json()
    assert after == {
        "restaurantId": body["restaurant"]["id"],
        "restaurantTitle": "Spice Villa",
        "restaurantExists": True,
    }


async def test_one_restaurant_per_owner(client, owner, restaurant):
    response = await client.post(
        "/api/restaurant/profile",
        json={"restaurant": {"title": "Second", "address": "Elsewhere"}},
        headers=auth_headers(owner),
    )
    assert response.status_code == 400


async def test_profile_get_without_restaurant(client, owner):
    response = await client.get("/api/restaurant/profile", headers=auth_headers(owner))
    assert response.status_code == 200
    assert response.json()["restaurant"] is None
    assert response.json()["owner"]["id"] == owner.id


async def test_profile_update(client, owner, restaurant):
    response = await client.put(
        "/api/restaurant/profile",
        json={"restaurant": {"description": "North Indian classics"}},
        headers=auth_headers(owner),
    )
    assert response.status_code == 200
    assert response.json()["restaurant"]["description"] == "North Indian classics"
    assert response.json()["restaurant"]["title"] == restaurant.title


async def test_profile_update_requires_restaurant(client, owner):
    response = await client.put(
        "/api/restaurant/profile",
        json={"restaurant": {"title": "Nope"}},
        headers=auth_headers(owner),
    )
    assert response.status_code == 403


async def test_menu_routes_require_profile(client, owner):
    response = await client.get("/api/restaurant/items", headers=auth_headers(owner))
    assert response.status_code == 403
    assert response.json()["message"] == (
        "Restaurant profile incomplete. Please create your restaurant profile first."
    )


async def test_menu_crud(client, owner, restaurant):
    headers = auth_headers(owner)
    created = await client.post(
        "/api/restaurant/items",
        json={"title": "Dal Makhani", "category": "Indian", "price": 8.5, "discount": 10},
        headers=headers,
    )
    assert created.status_code == 201
    item_id = created.json()["id"]
    assert created.json()["restaurantId"] == restaurant.id

    updated = await client.put(f"/api/restaurant/items/{item_id}", json={"price": 9.0}, headers=headers)
    assert updated.status_code == 200
    assert updated.json()["price"] == 9.0
    assert updated.json()["title"] == "Dal Makhani"

    menu = (await client.get("/api/restaurant/items", headers=headers)).json()
    assert [item["id"] for item in menu] == [item_id]

    deleted = await client.delete(f"/api/restaurant/items/{item_id}", headers=headers)
    assert deleted.status_code == 200
    assert (await client.get("/api/restaurant/items", headers=headers)).json() == []


async def test_menu_item_validation(client, owner, restaurant):
    response = await client.post(
        "/api/restaurant/items",
        json={"title": "Free Lunch", "category": "Indian", "price": -1},
        headers=auth_headers(owner),
    )
    assert response.status_code == 400


async def test_cannot_edit_other_restaurants_item(client, restaurant, make_user, make_restaurant, make_food_item):
    food_item = await make_food_item(restaurant)
    intruder = await make_user(UserRole.RESTAURANT)
    await make_restaurant(intruder, title="Intruder Grill")

    response = await client.put(
        f"/api/restaurant/items/{food_item.id}", json={"price": 1}, headers=auth_headers(intruder)
    )
    assert response.status_code == 403

    response = await client.delete(f"/api/restaurant/items/{food_item.id}", headers=auth_headers(intruder))
    assert response.status_code == 403


async def test_restaurant_dashboard_counts(client, owner, restaurant, make_food_item):
    await make_food_item(restaurant)
    await make_food_item(restaurant, title="Naan")
    counts = (await client.get("/api/restaurant/dashboard-counts", headers=auth_headers(owner))).json()
    assert counts["totalMenuItems"] == 2
    assert counts["pendingOrdersCount"] == 0
    assert counts["averageRating"] is None


# =============================================================================
# CUSTOMER CATALOG
# =============================================================================

async def test_food_item_filters(client, customer, restaurant, make_restaurant, make_food_item):
    mumbai = await make_restaurant(title="Bombay Bites", address="3 Marine Drive, Mumbai")
    await make_food_item(restaurant, title="Paneer Tikka", category="Indian")
    await make_food_item(restaurant, title="Gelato", category="Desserts", description="Pistachio")
    await make_food_item(mumbai, title="Vada Pav", category="Fast Food")
    headers = auth_headers(customer)

    async def titles(**params):
        items = (await client.get("/api/customer/food-items", params=params, headers=headers)).json()
        return sorted(item["title"] for item in items)

    assert await titles() == ["Gelato", "Paneer Tikka", "Vada Pav"]
    assert await titles(category="all") == ["Gelato", "Paneer Tikka", "Vada Pav"]
    assert await titles(category="Desserts") == ["Gelato"]
    assert await titles(search="pistach") == ["Gelato"]
    assert await titles(location="mumbai") == ["Vada Pav"]
    assert await titles(location="Atlantis") == []


async def test_catalog_item_includes_restaurant(client, customer, restaurant, make_food_item):
    await make_food_item(restaurant)
    items = (await client.get("/api/customer/food-items", headers=auth_headers(customer))).json()
    assert items[0]["restaurant"]["title"] == restaurant.title


async def test_restaurants_by_location(client, customer, restaurant, make_restaurant):
    await make_restaurant(title="Bombay Bites", address="3 Marine Drive, Mumbai")
    headers = auth_headers(customer)
    restaurants = (await client.get("/api/customer/restaurants", params={"location": "pune"}, headers=headers)).json()
    assert [r["title"] for r in restaurants] == [restaurant.title]


async def test_popular_restaurants_empty(client, customer):
    body = (await client.get("/api/customer/popular-restaurants", headers=auth_headers(customer))).json()
    assert body["promotedRestaurants"] == []
    assert body["message"] == "No popular restaurants configured yet."


async def test_restaurant_message_to_admin(client, owner, restaurant):
    response = await client.post(
        "/api/restaurant/feedback/admin",
        json={"message": "  Please review our menu  "},
        headers=auth_headers(owner),
    )
    assert response.status_code == 201
    assert response.json()["feedback"]["message"] == "Please review our menu"
    assert response.json()["feedback"]["restaurant"]["id"] == restaurant.id


async def test_search_wildcards_match_literally(client, customer, restaurant, make_food_item):
    await make_food_item(restaurant, title="Paneer Tikka")
    await make_food_item(restaurant, title="Lassi 100% Mango")
    headers = auth_headers(customer)

    async def titles(**params):
        items = (await client.get("/api/customer/food-items", params=params, headers=headers)).json()
        return [item["title"] for item in items]

    assert await titles(search="%") == ["Lassi 100% Mango"]
    assert await titles(search="_") == []
    assert await titles(location="%") == []
