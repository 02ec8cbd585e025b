from __future__ import annotations

import pytest
from sqlalchemy.exc import OperationalError

from marketplace.core.errors import InvalidCategoryError, ValidationError
from marketplace.core.pagination import PageRequest
from marketplace.db.models.outbox import PendingCounterUpdate
from marketplace.schemas.service import ServiceFilters, ServiceUpdate


def test_create_service_adds_ref_and_clears_outbox(lifecycle, category, session, service_input) -> None:
    service = lifecycle.create_service(service_input(category.id))

    assert category.service_ids == [service.id]
    assert session.query(PendingCounterUpdate).count() == 0
    assert sorted(service.tags) == ["cleaning", "home"]
    assert service.pricing["currency"] == "USD"


def test_create_service_with_unknown_category(lifecycle, service_input) -> None:
    with pytest.raises(InvalidCategoryError):
        lifecycle.create_service(service_input("no-such-category"))


def test_invalid_category_is_a_validation_error() -> None:
    assert issubclass(InvalidCategoryError, ValidationError)
    assert InvalidCategoryError().status_code == 400


def test_embedded_category_cannot_own_services(lifecycle, categories, service_input) -> None:
    embedded = categories.create_category("Beauty", child_mode="embedded", subcategories=[{"name": "Nails"}])

    with pytest.raises(InvalidCategoryError):
        lifecycle.create_service(service_input(embedded.id))


def test_moving_a_service_updates_both_indexes(lifecycle, categories, category, service_input) -> None:
    other = categories.create_category("Laundry")
    service = lifecycle.create_service(service_input(category.id))

    moved = lifecycle.update_service(service.id, ServiceUpdate(category_id=other.id, title="Ironing"))

    assert moved.category_id == other.id
    assert moved.title == "Ironing"
    assert category.service_ids == []
    assert other.service_ids == [service.id]


def test_moving_to_an_invalid_category_changes_nothing(lifecycle, category, session, service_input) -> None:
    service = lifecycle.create_service(service_input(category.id))

    with pytest.raises(InvalidCategoryError):
        lifecycle.update_service(service.id, ServiceUpdate(category_id="missing"))

    session.expire_all()
    assert lifecycle.get_service_by_id(service.id).category_id == category.id
    assert session.query(PendingCounterUpdate).count() == 0


def test_update_replaces_tags_and_pricing(lifecycle, category, service_input) -> None:
    service = lifecycle.create_service(service_input(category.id))

    updated = lifecycle.update_service(
        service.id,
        ServiceUpdate(tags=["Cleaning", "Eco"], pricing={"base_price": 80, "currency": "GHS", "percentage_charge": 5}),
    )

    assert sorted(updated.tags) == ["cleaning", "eco"]
    assert updated.base_price == 80
    assert updated.currency == "GHS"
    assert updated.percentage_charge == 5
    assert updated.title == "Deep clean"


def test_update_missing_service_returns_none(lifecycle) -> None:
    assert lifecycle.update_service("missing", ServiceUpdate(title="x")) is None


def test_delete_service_removes_ref(lifecycle, category, service_input) -> None:
    service = lifecycle.create_service(service_input(category.id))

    assert lifecycle.delete_service(service.id) is True
    assert lifecycle.delete_service(service.id) is False
    assert category.service_ids == []
    assert lifecycle.get_service_by_id(service.id) is None


def test_failed_counter_update_stays_queued_and_replays(
    lifecycle, categories, category, session, monkeypatch, service_input
) -> None:
    def broken(category_id, service_id):
        raise OperationalError("INSERT INTO category_service_refs", {}, Exception("database is locked"))

    with monkeypatch.context() as patch:
        patch.setattr(categories, "add_service_ref", broken)
        service = lifecycle.create_service(service_input(category.id))

    # the service write committed even though the counter update did not
    assert lifecycle.get_service_by_id(service.id) is not None
    pending = session.query(PendingCounterUpdate).one()
    assert pending.service_id == service.id
    assert pending.attempts == 1
    assert "database is locked" in pending.last_error
    assert categories.get_category_by_id(category.id).service_ids == []

    assert lifecycle.outbox.flush() == 1

    assert session.query(PendingCounterUpdate).count() == 0
    assert categories.get_category_by_id(category.id).service_ids == [service.id]


def test_queued_updates_replay_in_order(lifecycle, categories, category, session, monkeypatch, service_input) -> None:
    def broken(category_id, service_id):
        raise OperationalError("INSERT", {}, Exception("boom"))

    with monkeypatch.context() as patch:
        patch.setattr(categories, "add_service_ref", broken)
        service = lifecycle.create_service(service_input(category.id))

    # the delete's decrement sits behind the stuck increment and is applied after it
    lifecycle.delete_service(service.id)

    assert session.query(PendingCounterUpdate).count() == 0
    assert categories.get_category_by_id(category.id).service_ids == []


def test_services_by_category_lists_active_only(lifecycle, category, service_input) -> None:
    active = lifecycle.create_service(service_input(category.id))
    lifecycle.create_service(service_input(category.id, title="Retired", is_active=False))

    page = lifecycle.get_services_by_category(category.id, PageRequest(page=1, limit=10))

    assert [s.id for s in page["items"]] == [active.id]
    assert page["total"] == 1


def test_popular_services_are_popular_and_active(lifecycle, category, service_input) -> None:
    hit = lifecycle.create_service(service_input(category.id, popular=True))
    lifecycle.create_service(service_input(category.id, title="Hidden hit", popular=True, is_active=False))
    lifecycle.create_service(service_input(category.id, title="Plain"))

    assert [s.id for s in lifecycle.get_popular_services(limit=5)] == [hit.id]


def test_search_matches_title_description_and_tags(lifecycle, category, service_input) -> None:
    lifecycle.create_service(service_input(category.id, title="Carpet shampoo", tags=["rugs"]))
    lifecycle.create_service(service_input(category.id, title="Oven degrease", description="Kitchen appliances"))
    lifecycle.create_service(service_input(category.id, title="Carpet repair", is_active=False))

    assert [s.title for s in lifecycle.search_services("CARPET")] == ["Carpet shampoo"]
    assert [s.title for s in lifecycle.search_services("kitchen")] == ["Oven degrease"]
    assert [s.title for s in lifecycle.search_services("rugs")] == ["Carpet shampoo"]


def test_search_requires_a_query(lifecycle) -> None:
    with pytest.raises(ValidationError):
        lifecycle.search_services("  ")


def test_get_all_services_filters(lifecycle, categories, category, service_input) -> None:
    laundry = categories.create_category("Laundry")
    cheap = lifecycle.create_service(
        service_input(category.id, title="Cheap", pricing={"base_price": 10}, locations=["Tema"])
    )
    mid = lifecycle.create_service(
        service_input(category.id, title="Mid", pricing={"base_price": 50}, locations=["Accra", "Kumasi"])
    )
    lifecycle.create_service(service_input(laundry.id, title="Wash", pricing={"base_price": 50}, popular=True))
    everything = PageRequest(page=1, limit=10)

    by_price = lifecycle.get_all_services(everything, ServiceFilters(min_price=10, max_price=50, category_id=category.id))
    assert {s.id for s in by_price["items"]} == {cheap.id, mid.id}

    by_location = lifecycle.get_all_services(everything, ServiceFilters(locations=["Kumasi", "Tamale"]))
    assert [s.id for s in by_location["items"]] == [mid.id]

    popular = lifecycle.get_all_services(everything, ServiceFilters(popular=True))
    assert [s.title for s in popular["items"]] == ["Wash"]

    searched = lifecycle.get_all_services(everything, ServiceFilters(search="chea"))
    assert [s.id for s in searched["items"]] == [cheap.id]

    assert lifecycle.get_all_services(everything)["total"] == 3


def test_get_all_services_rejects_inverted_price_range(lifecycle) -> None:
    with pytest.raises(ValidationError):
        lifecycle.get_all_services(PageRequest(page=1, limit=10), ServiceFilters(min_price=50, max_price=10))


def test_get_all_services_pagination_flags(lifecycle, category, service_input) -> None:
    for i in range(5):
        lifecycle.create_service(service_input(category.id, title=f"Job {i}"))

    middle = lifecycle.get_all_services(PageRequest(page=2, limit=2))

    assert len(middle["items"]) == 2
    assert middle["total"] == 5
    assert middle["total_pages"] == 3
    assert middle["has_next"] is True
    assert middle["has_prev"] is True


def test_toggles_flip_flags(lifecycle, category, service_input) -> None:
    service = lifecycle.create_service(service_input(category.id))

    assert lifecycle.toggle_active(service.id).is_active is False
    assert lifecycle.toggle_active(service.id).is_active is True
    assert lifecycle.toggle_popular(service.id).popular is True
    assert lifecycle.toggle_active("missing") is None
    assert lifecycle.toggle_popular("missing") is None


def test_service_stats(lifecycle, category, service_input) -> None:
    lifecycle.create_service(service_input(category.id, popular=True))
    lifecycle.create_service(service_input(category.id, title="Off", is_active=False))

    assert lifecycle.get_service_stats() == {"total": 2, "active": 1, "inactive": 1, "popular": 1}
