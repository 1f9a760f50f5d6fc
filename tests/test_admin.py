"""Admin moderation: approvals, deletions, site configuration, messages and reports."""

from datetime import date, timedelta

import pytest
from sqlalchemy import func, select

from foodhub.models import ApprovalState, FoodItem, Restaurant, SiteConfig, UserRole
from foodhub.services.catalog import delete_restaurant_cascade
from tests.conftest import TEST_PASSWORD, auth_headers
from tests.test_orders import order_payload, place
from tests.test_ratings import delivered_order, rate


# =============================================================================
# ACCOUNTS
# =============================================================================

async def test_approve_pending_restaurant_owner(client, admin, make_user):
    pending = await make_user(UserRole.RESTAURANT, approval=ApprovalState.PENDING)
    login = {"email": pending.email, "password": TEST_PASSWORD}
    assert (await client.post("/api/login", json=login)).status_code == 403

    response = await client.put(f"/api/admin/users/{pending.id}/approve", headers=auth_headers(admin))
    assert response.status_code == 200
    assert response.json()["user"]["approval"] == "accepted"

    assert (await client.post("/api/login", json=login)).status_code == 200

    again = await client.put(f"/api/admin/users/{pending.id}/approve", headers=auth_headers(admin))
    assert again.status_code == 400


async def test_customers_need_no_approval(client, admin, customer):
    response = await client.put(f"/api/admin/users/{customer.id}/reject", headers=auth_headers(admin))
    assert response.status_code == 400


async def test_admin_cannot_delete_self_or_other_admin(client, admin, make_user):
    other_admin = await make_user(UserRole.ADMIN)
    assert (await client.delete(f"/api/admin/users/{admin.id}", headers=auth_headers(admin))).status_code == 403
    assert (await client.delete(f"/api/admin/users/{other_admin.id}", headers=auth_headers(admin))).status_code == 403
    assert (await client.delete("/api/admin/users/9999", headers=auth_headers(admin))).status_code == 404


async def test_delete_customer_removes_their_data_and_recomputes_ratings(
    client, admin, customer, make_user, restaurant, make_food_item
):
    other = await make_user()
    food_item = await make_food_item(restaurant)
    await place(client, customer, order_payload(restaurant, (food_item, 1)))
    await rate(client, customer, restaurant, 1)
    await rate(client, other, restaurant, 5)

    response = await client.delete(f"/api/admin/users/{customer.id}", headers=auth_headers(admin))
    assert response.status_code == 200

    users = (await client.get("/api/admin/users", headers=auth_headers(admin))).json()
    assert customer.id not in [u["id"] for u in users]
    assert (await client.get("/api/admin/orders", headers=auth_headers(admin))).json() == []

    restaurants = (await client.get("/api/admin/restaurants", headers=auth_headers(admin))).json()
    assert restaurants[0]["averageRating"] == pytest.approx(5.0)


async def test_delete_restaurant_owner_cascades(client, admin, customer, owner, restaurant, make_food_item):
    food_item = await make_food_item(restaurant)
    await place(client, customer, order_payload(restaurant, (food_item, 1)))

    response = await client.delete(f"/api/admin/users/{owner.id}", headers=auth_headers(admin))
    assert response.status_code == 200

    headers = auth_headers(admin)
    assert (await client.get("/api/admin/restaurants", headers=headers)).json() == []
    assert (await client.get("/api/admin/orders", headers=headers)).json() == []


# =============================================================================
# RESTAURANTS
# =============================================================================

async def test_delete_restaurant_cascade(client, admin, customer, restaurant, make_restaurant, make_food_item):
    other = await make_restaurant(title="Survivor")
    food_item = await make_food_item(restaurant)
    await client.post(
        "/api/customer/cart/add",
        json={"foodItemId": food_item.id, "quantity": 1, "priceAtTimeOfAddition": 10, "restaurantId": restaurant.id},
        headers=auth_headers(customer),
    )
    await place(client, customer, order_payload(restaurant, (food_item, 1)))
    await rate(client, customer, restaurant, 4)
    await client.put(
        "/api/admin/promoted-restaurants",
        json={"restaurantIds": [restaurant.id, other.id]},
        headers=auth_headers(admin),
    )

    response = await client.delete(f"/api/admin/restaurants/{restaurant.id}", headers=auth_headers(admin))
    assert response.status_code == 200

    headers = auth_headers(admin)
    assert [r["id"] for r in (await client.get("/api/admin/restaurants", headers=headers)).json()] == [other.id]
    assert (await client.get("/api/admin/orders", headers=headers)).json() == []
    assert (await client.get("/api/admin/feedbacks/customer", headers=headers)).json() == []

    promoted = (await client.get("/api/admin/promoted-restaurants", headers=headers)).json()
    assert [r["id"] for r in promoted["promotedRestaurants"]] == [other.id]

    items = (await client.get("/api/customer/food-items", headers=auth_headers(customer))).json()
    assert items == []


async def test_delete_unknown_restaurant(client, admin):
    response = await client.delete("/api/admin/restaurants/999", headers=auth_headers(admin))
    assert response.status_code == 404


async def test_failed_restaurant_delete_leaves_nothing_committed(db, restaurant, make_food_item, monkeypatch):
    await make_food_item(restaurant)
    assert (await db.execute(select(SiteConfig))).scalar_one_or_none() is None

    async def failing_delete(instance):
        raise RuntimeError("delete failed")

    monkeypatch.setattr(db, "delete", failing_delete)
    with pytest.raises(RuntimeError):
        await delete_restaurant_cascade(db, restaurant.id)
    await db.rollback()

    assert await db.scalar(select(func.count(Restaurant.id))) == 1
    assert await db.scalar(select(func.count(FoodItem.id))) == 1


async def test_restaurant_delete_without_site_config(client, admin, restaurant, make_food_item):
    await make_food_item(restaurant)
    response = await client.delete(f"/api/admin/restaurants/{restaurant.id}", headers=auth_headers(admin))
    assert response.status_code == 200

    listing = await client.get("/api/admin/restaurants", headers=auth_headers(admin))
    assert listing.json() == []


async def test_restaurant_listing_includes_owner(client, admin, owner, restaurant):
    restaurants = (await client.get("/api/admin/restaurants", headers=auth_headers(admin))).json()
    assert restaurants[0]["owner"]["email"] == owner.email


# =============================================================================
# CATEGORIES & PROMOTIONS
# =============================================================================

async def test_categories_are_seeded(client, customer):
    categories = (await client.get("/api/customer/categories", headers=auth_headers(customer))).json()
    assert "Indian" in categories


async def test_category_lifecycle(client, admin):
    headers = auth_headers(admin)

    added = await client.post("/api/admin/categories", json={"name": "  Thai "}, headers=headers)
    assert added.status_code == 201
    assert "Thai" in added.json()["categories"]

    duplicate = await client.post("/api/admin/categories", json={"name": "Thai"}, headers=headers)
    assert duplicate.status_code == 400

    renamed = await client.put("/api/admin/categories/Thai", json={"newName": "Thai Street"}, headers=headers)
    assert renamed.status_code == 200
    assert "Thai Street" in renamed.json()["categories"]
    assert "Thai" not in renamed.json()["categories"]

    deleted = await client.delete("/api/admin/categories/Thai Street", headers=headers)
    assert deleted.status_code == 200
    assert "Thai Street" not in deleted.json()["categories"]

    missing = await client.delete("/api/admin/categories/Nope", headers=headers)
    assert missing.status_code == 404


async def test_rename_category_moves_food_items(client, admin, customer, restaurant, make_food_item):
    await make_food_item(restaurant, category="Indian")
    await client.put("/api/admin/categories/Indian", json={"newName": "North Indian"}, headers=auth_headers(admin))

    items = (
        await client.get(
            "/api/customer/food-items", params={"category": "North Indian"}, headers=auth_headers(customer)
        )
    ).json()
    assert len(items) == 1


async def test_promoted_restaurants_keep_order_and_skip_unknown(client, admin, customer, make_restaurant):
    first = await make_restaurant(title="First")
    second = await make_restaurant(title="Second")

    response = await client.put(
        "/api/admin/promoted-restaurants",
        json={"restaurantIds": [second.id, 999, first.id, second.id]},
        headers=auth_headers(admin),
    )
    assert response.status_code == 200
    assert [r["id"] for r in response.json()["promotedRestaurants"]] == [second.id, first.id]

    popular = (await client.get("/api/customer/popular-restaurants", headers=auth_headers(customer))).json()
    assert [r["title"] for r in popular["promotedRestaurants"]] == ["Second", "First"]

    counts = (await client.get("/api/admin/dashboard-counts", headers=auth_headers(admin))).json()
    assert counts["popularRestaurantsCount"] == 2


# =============================================================================
# MESSAGES & BROADCASTS
# =============================================================================

async def test_customer_message_status_moves_forward(client, admin, customer):
    sent = await client.post(
        "/api/customer/feedback/admin", json={"message": "Late delivery"}, headers=auth_headers(customer)
    )
    assert sent.status_code == 201
    feedback_id = sent.json()["feedback"]["id"]
    assert sent.json()["feedback"]["status"] == "new"

    url = f"/api/admin/feedback/user/{feedback_id}/status"
    headers = auth_headers(admin)
    assert (await client.put(url, json={"status": "pending"}, headers=headers)).status_code == 200
    assert (await client.put(url, json={"status": "new"}, headers=headers)).status_code == 400
    assert (await client.put(url, json={"status": "resolved"}, headers=headers)).status_code == 200
    assert (await client.put(url, json={"status": "resolved"}, headers=headers)).status_code == 400

    inbox = (await client.get("/api/admin/feedback/user", headers=headers)).json()
    assert inbox[0]["status"] == "resolved"
    assert inbox[0]["sender"]["id"] == customer.id


async def test_restaurant_message_resolve(client, admin, owner, restaurant):
    sent = await client.post(
        "/api/restaurant/feedback/admin", json={"message": "Need help"}, headers=auth_headers(owner)
    )
    feedback_id = sent.json()["feedback"]["id"]

    response = await client.put(
        f"/api/admin/feedbacks/restaurant/{feedback_id}/resolve", headers=auth_headers(admin)
    )
    assert response.status_code == 200

    sent_list = (await client.get("/api/restaurant/feedback/admin-sent", headers=auth_headers(owner))).json()
    assert sent_list[0]["status"] == "resolved"
    assert sent_list[0]["adminId"] == admin.id


async def test_broadcast_audiences(client, admin, customer, owner, restaurant):
    headers = auth_headers(admin)
    await client.post(
        "/api/admin/feedbacks/admin/send",
        json={"message": "Welcome all", "receiverRole": "allUsers"},
        headers=headers,
    )
    await client.post(
        "/api/admin/feedbacks/admin/send",
        json={"message": "Restaurants only", "receiverRole": "allRestaurants", "type": "Information"},
        headers=headers,
    )
    direct = await client.post(
        "/api/admin/feedbacks/admin/send",
        json={"message": "About your menu", "receiverRole": "specificRestaurant", "receiver": restaurant.id},
        headers=headers,
    )
    assert direct.status_code == 201
    assert direct.json()["feedback"]["receiverId"] == owner.id

    customer_view = (await client.get("/api/customer/announcements", headers=auth_headers(customer))).json()
    assert [b["message"] for b in customer_view] == ["Welcome all"]

    owner_view = (await client.get("/api/restaurant/announcements", headers=auth_headers(owner))).json()
    assert {b["message"] for b in owner_view} == {"Welcome all", "Restaurants only", "About your menu"}

    assert len((await client.get("/api/admin/feedbacks/admin", headers=headers)).json()) == 3


async def test_broadcast_to_specific_user_requires_receiver(client, admin, make_user):
    headers = auth_headers(admin)
    missing = await client.post(
        "/api/admin/feedbacks/admin/send",
        json={"message": "Hi", "receiverRole": "specificUser"},
        headers=headers,
    )
    assert missing.status_code == 400

    other_admin = await make_user(UserRole.ADMIN)
    wrong_type = await client.post(
        "/api/admin/feedbacks/admin/send",
        json={"message": "Hi", "receiverRole": "specificUser", "receiver": other_admin.id},
        headers=headers,
    )
    assert wrong_type.status_code == 400


# =============================================================================
# REPORTS
# =============================================================================

async def test_reports(client, admin, customer, owner, restaurant, make_food_item):
    tikka = await make_food_item(restaurant, price=10.0, category="Indian")
    await delivered_order(client, customer, owner, restaurant, tikka)
    cancelled_id = (await place(client, customer, order_payload(restaurant, (tikka, 3)))).json()["order"]["id"]
    await client.put(f"/api/customer/orders/{cancelled_id}/cancel", headers=auth_headers(customer))
    await rate(client, customer, restaurant, 4)

    headers = auth_headers(admin)

    metrics = (await client.get("/api/admin/reports/metrics", headers=headers)).json()
    assert metrics["totalRevenue"] == pytest.approx(10.0)
    assert metrics["cancellationRate"] == pytest.approx(50.0)
    assert metrics["averageDeliveryTime"] is not None

    trend = (await client.get("/api/admin/reports/order-trend", headers=headers)).json()
    assert sum(trend["datasets"][0]["data"]) == 2
    assert trend["datasets"][0]["label"] == "Number of Orders"

    top = (await client.get("/api/admin/reports/top-restaurants", headers=headers)).json()
    assert top == [
        {"rank": 1, "restaurantId": restaurant.id, "name": restaurant.title, "orders": 1, "rating": 4.0}
    ]

    popularity = (await client.get("/api/admin/reports/category-popularity", headers=headers)).json()
    assert popularity["labels"] == ["Indian"]
    assert popularity["datasets"][0]["data"] == [4]

    distribution = (await client.get("/api/admin/reports/rating-distribution", headers=headers)).json()
    assert distribution["labels"] == ["1", "2", "3", "4", "5"]
    assert distribution["datasets"][0]["data"] == [0, 0, 0, 1, 0]


async def test_report_date_range(client, admin, customer, restaurant, make_food_item):
    food_item = await make_food_item(restaurant)
    await place(client, customer, order_payload(restaurant, (food_item, 1)))
    headers = auth_headers(admin)

    today = date.today()
    inclusive = await client.get(
        "/api/admin/reports/order-trend",
        params={"startDate": (today - timedelta(days=1)).isoformat(), "endDate": (today + timedelta(days=1)).isoformat()},
        headers=headers,
    )
    assert sum(inclusive.json()["datasets"][0]["data"]) == 1

    past = await client.get(
        "/api/admin/reports/order-trend",
        params={"startDate": "2000-01-01", "endDate": "2000-01-31"},
        headers=headers,
    )
    assert past.json()["labels"] == []


async def test_admin_dashboard_counts(client, admin, customer, make_user, restaurant):
    await make_user(UserRole.RESTAURANT, approval=ApprovalState.PENDING)
    counts = (await client.get("/api/admin/dashboard-counts", headers=auth_headers(admin))).json()
    assert counts["totalRestaurants"] == 1
    assert counts["pendingApprovals"] == 1
    assert counts["totalUsers"] == 4
