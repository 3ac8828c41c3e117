"""
Tests for the restaurant catalog endpoints.
"""

import pytest

from food_delivery import main

SEARCH = "/api/restaurants/search"


def names(response) -> list[str]:
    return [r["restaurantName"] for r in response.json()["data"]]


class TestRestaurantDetail:

    async def test_returns_menu_and_cuisines(self, client, restaurant):
        response = await client.get(f"/api/restaurants/{restaurant.id}")

        assert response.status_code == 200
        data = response.json()
        assert data["restaurantName"] == "Spice Route"
        assert data["deliveryPrice"] == 300
        assert data["cuisines"] == ["Indian", "Biryani"]
        assert [(m["id"], m["price"]) for m in data["menuItems"]] == [("A", 600), ("B", 1500)]

    async def test_unknown_restaurant(self, client):
        response = await client.get(f"/api/restaurants/{'0' * 32}")

        assert response.status_code == 404
        assert response.json() == {"message": "Restaurant not found"}

    async def test_list_all(self, client, catalog):
        response = await client.get("/api/restaurants")

        assert response.status_code == 200
        assert len(response.json()) == 4


class TestRestaurantSearch:

    async def test_default_sort_is_most_recently_updated(self, client, catalog):
        response = await client.get(SEARCH)

        assert response.status_code == 200
        assert names(response) == ["Napoli Express", "Spice Route", "Pizza Palace", "Wok This Way"]
        assert response.json()["pagination"] == {"total": 4, "page": 1, "pages": 1}

    @pytest.mark.parametrize(
        "sort_option, expected",
        [
            ("deliveryPrice", ["Napoli Express", "Pizza Palace", "Spice Route", "Wok This Way"]),
            ("estimatedDeliveryTime", ["Wok This Way", "Pizza Palace", "Spice Route", "Napoli Express"]),
            ("bogus", ["Napoli Express", "Spice Route", "Pizza Palace", "Wok This Way"]),
        ],
    )
    async def test_sort_options(self, client, catalog, sort_option, expected):
        response = await client.get(SEARCH, params={"sortOption": sort_option})

        assert names(response) == expected

    async def test_query_matches_name_or_cuisine(self, client, catalog):
        response = await client.get(SEARCH, params={"searchQuery": "pizza"})

        assert sorted(names(response)) == ["Napoli Express", "Pizza Palace"]
        assert response.json()["pagination"]["total"] == 2

    async def test_query_is_case_insensitive(self, client, catalog):
        response = await client.get(SEARCH, params={"searchQuery": "SPICE"})

        assert names(response) == ["Spice Route"]

    async def test_cuisine_filter_matches_any(self, client, catalog):
        response = await client.get(SEARCH, params={"selectedCuisines": "Chinese,Indian"})

        assert sorted(names(response)) == ["Spice Route", "Wok This Way"]

    async def test_query_and_cuisines_combine(self, client, catalog):
        response = await client.get(
            SEARCH, params={"searchQuery": "pizza", "selectedCuisines": "Italian"}
        )

        assert names(response) == ["Napoli Express"]

    async def test_no_matches(self, client, catalog):
        response = await client.get(SEARCH, params={"searchQuery": "sushi"})

        assert response.json() == {"data": [], "pagination": {"total": 0, "page": 1, "pages": 0}}

    @pytest.mark.parametrize("query", ["%", "_", "%pizza", "sp_ce"])
    async def test_like_wildcards_match_literally(self, client, catalog, query):
        response = await client.get(SEARCH, params={"searchQuery": query})

        assert response.json()["pagination"]["total"] == 0

    async def test_pagination(self, client, catalog, monkeypatch):
        monkeypatch.setattr(main.settings, "restaurant_page_size", 3)

        response = await client.get(SEARCH, params={"page": "2"})

        assert names(response) == ["Wok This Way"]
        assert response.json()["pagination"] == {"total": 4, "page": 2, "pages": 2}

    @pytest.mark.parametrize("page", ["abc", "0", "-3"])
    async def test_invalid_page_means_first_page(self, client, catalog, page):
        response = await client.get(SEARCH, params={"page": page})

        assert response.json()["pagination"]["page"] == 1
        assert len(names(response)) == 4


class TestHealth:

    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "operational"
        assert data["database"] == "healthy"
        assert data["payment_gateway"] == "healthy"

    async def test_root(self, client):
        response = await client.get("/")

        assert response.json()["health"] == "/health"
