from __future__ import annotations

from marketplace.core.errors import StorageError
from marketplace.services.category_service import CategoryService


def _create_category(api, name: str = "Cleaning", **extra) -> dict:
    response = api.post("/api/categories", json={"name": name, **extra})
    assert response.status_code == 201, response.text
    return response.json()["data"]


def _create_service(api, category_id: str, **extra) -> dict:
    body = {
        "title": "Deep clean",
        "description": "Whole-home deep cleaning",
        "categoryId": category_id,
        "pricing": {"basePrice": 120, "currency": "GHS"},
        "locations": ["Accra"],
        "tags": ["Home"],
        **extra,
    }
    response = api.post("/api/services", json=body)
    assert response.status_code == 201, response.text
    return response.json()["data"]


def test_category_payload_uses_camel_case(api) -> None:
    data = _create_category(api, description="Homes and offices")

    assert data["serviceCount"] == 0
    assert data["serviceIds"] == []
    assert data["childMode"] == "referenced"
    assert "createdAt" in data


def test_duplicate_category_is_a_conflict(api) -> None:
    _create_category(api)

    response = api.post("/api/categories", json={"name": "Cleaning"})

    assert response.status_code == 409
    assert response.json() == {
        "success": False,
        "error": "Category with this name already exists",
        "statusCode": 409,
    }


def test_service_lifecycle_keeps_category_index(api) -> None:
    category = _create_category(api)
    service = _create_service(api, category["id"])

    assert service["pricing"]["currency"] == "GHS"
    assert service["tags"] == ["home"]

    fetched = api.get(f"/api/categories/{category['id']}", params={"includeServices": "true"}).json()["data"]
    assert fetched["serviceIds"] == [service["id"]]
    assert fetched["serviceCount"] == 1
    assert [s["id"] for s in fetched["services"]] == [service["id"]]

    plain = api.get(f"/api/categories/{category['id']}").json()["data"]
    assert plain["services"] is None

    assert api.delete(f"/api/services/{service['id']}").status_code == 200
    after = api.get(f"/api/categories/{category['id']}").json()["data"]
    assert after["serviceCount"] == 0


def test_invalid_category_on_service_create_is_400(api) -> None:
    response = api.post(
        "/api/services",
        json={
            "title": "Orphan",
            "description": "No home",
            "categoryId": "missing",
            "pricing": {"basePrice": 1},
        },
    )

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert response.json()["statusCode"] == 400


def test_request_body_validation_uses_failure_envelope(api) -> None:
    response = api.post("/api/services", json={"title": ""})

    assert response.status_code == 422
    body = response.json()
    assert body["success"] is False
    assert body["statusCode"] == 422
    assert body["details"]


def test_deletion_info_codes(api, monkeypatch) -> None:
    category = _create_category(api)
    service = _create_service(api, category["id"])

    ok = api.get(f"/api/categories/{category['id']}/deletion-info")
    assert ok.status_code == 200
    assert ok.json()["data"]["affectedServiceIds"] == [service["id"]]
    assert ok.json()["data"]["canSafelyDelete"] is False

    assert api.get("/api/categories/missing/deletion-info").status_code == 404
    assert api.get(f"/api/categories/{'x' * 65}/deletion-info").status_code == 400

    def unavailable(self, category_id):
        raise StorageError()

    monkeypatch.setattr(CategoryService, "get_category_deletion_info", unavailable)
    down = api.get(f"/api/categories/{category['id']}/deletion-info")
    assert down.status_code == 503
    assert down.json()["success"] is False


def test_delete_category_keeps_services(api) -> None:
    category = _create_category(api)
    service = _create_service(api, category["id"])

    assert api.delete(f"/api/categories/{category['id']}").status_code == 200
    assert api.get(f"/api/categories/{category['id']}").status_code == 404
    assert api.get(f"/api/services/{service['id']}").json()["data"]["categoryId"] == category["id"]
    assert api.delete(f"/api/categories/{category['id']}").status_code == 404

    leftover = api.get(f"/api/categories/{category['id']}/deletion-info").json()["data"]
    assert leftover["categoryExists"] is False
    assert leftover["affectedServiceIds"] == [service["id"]]
    assert api.get("/api/categories/orphans").json()["data"] == [
        {"categoryId": category["id"], "serviceIds": [service["id"]]}
    ]


def test_category_stats_and_reconcile(api) -> None:
    category = _create_category(api)
    _create_service(api, category["id"])

    stats = api.get("/api/categories/stats").json()["data"]
    assert stats[0]["liveServiceCount"] == 1
    assert stats[0]["drift"] == 0

    report = api.post("/api/categories/reconcile").json()["data"]
    assert report == [{"categoryId": category["id"], "added": [], "removed": []}]


def test_list_and_search_categories(api) -> None:
    for name in ("Alpha", "Bravo", "Charlie"):
        _create_category(api, name, tags=["Home"])

    page = api.get("/api/categories", params={"limit": 2}).json()["data"]
    assert [c["name"] for c in page["items"]] == ["Alpha", "Bravo"]
    assert page["totalPages"] == 2
    assert page["hasNext"] is True

    assert api.get("/api/categories", params={"limit": 50}).status_code == 400
    assert [c["name"] for c in api.get("/api/categories/search", params={"q": "brav"}).json()["data"]] == ["Bravo"]


def test_embedded_category_subcategory_routes(api) -> None:
    category = _create_category(api, "Beauty", childMode="embedded", subcategories=[{"name": "Nails"}])

    added = api.post(f"/api/categories/{category['id']}/subcategories", json={"name": "Hair"})
    assert added.status_code == 201
    assert added.json()["data"]["position"] == 1

    sub_id = added.json()["data"]["id"]
    renamed = api.put(f"/api/categories/{category['id']}/subcategories/{sub_id}", json={"name": "Hair styling"})
    assert renamed.json()["data"]["name"] == "Hair styling"

    assert api.delete(f"/api/categories/{category['id']}/subcategories/{sub_id}").status_code == 200
    assert [s["name"] for s in api.get(f"/api/categories/{category['id']}").json()["data"]["subcategories"]] == ["Nails"]

    service = api.post(
        "/api/services",
        json={"title": "Manicure", "description": "Nails", "categoryId": category["id"], "pricing": {"basePrice": 5}},
    )
    assert service.status_code == 400


def test_service_listing_toggles_and_stats(api) -> None:
    category = _create_category(api)
    first = _create_service(api, category["id"], title="Cheap", pricing={"basePrice": 10})
    _create_service(api, category["id"], title="Pricey", pricing={"basePrice": 500})

    cheap = api.get("/api/services", params={"maxPrice": 100}).json()["data"]
    assert [s["title"] for s in cheap["items"]] == ["Cheap"]

    toggled = api.patch(f"/api/services/{first['id']}/toggle-popular").json()["data"]
    assert toggled["popular"] is True
    assert [s["id"] for s in api.get("/api/services/popular").json()["data"]] == [first["id"]]

    api.patch(f"/api/services/{first['id']}/toggle-active")
    by_category = api.get(f"/api/services/category/{category['id']}").json()["data"]
    assert [s["title"] for s in by_category["items"]] == ["Pricey"]

    assert api.get("/api/services/stats").json()["data"] == {"total": 2, "active": 1, "inactive": 1, "popular": 1}
    assert api.patch("/api/services/missing/toggle-active").status_code == 404


def test_update_service_moves_category(api) -> None:
    source = _create_category(api)
    target = _create_category(api, "Laundry")
    service = _create_service(api, source["id"])

    moved = api.put(f"/api/services/{service['id']}", json={"categoryId": target["id"]})

    assert moved.status_code == 200
    assert api.get(f"/api/categories/{source['id']}").json()["data"]["serviceIds"] == []
    assert api.get(f"/api/categories/{target['id']}").json()["data"]["serviceIds"] == [service["id"]]
    assert api.put("/api/services/missing", json={"title": "x"}).status_code == 404


def test_embedded_category_rejects_repeated_subcategory_names(api) -> None:
    response = api.post(
        "/api/categories",
        json={"name": "Beauty", "childMode": "embedded", "subcategories": [{"name": "Nails"}, {"name": "Nails"}]},
    )

    assert response.status_code == 409
    assert response.json()["error"] == "Subcategory with this name already exists"


def test_update_rejects_blank_service_text(api) -> None:
    category = _create_category(api)
    service = _create_service(api, category["id"])

    for body in ({"title": "   "}, {"description": "\t"}):
        response = api.put(f"/api/services/{service['id']}", json=body)
        assert response.status_code == 422

    assert api.get(f"/api/services/{service['id']}").json()["data"]["title"] == "Deep clean"
