from __future__ import annotations

import re

import pytest

from marketplace.core.errors import (
    ConflictError,
    InvalidStatusError,
    NotFoundError,
    SelfRatingError,
    TerminalStatusError,
    ValidationError,
)
from marketplace.core.pagination import PageRequest
from marketplace.schemas.provider import ClientRatingCreate, ProviderRequestCreate, ProviderUpdate, Witness


def _rate(providers, provider, value: int, client_id: str = "user-client"):
    return providers.add_client_rating(provider.id, ClientRatingCreate(client_id=client_id, rating=value))


def test_create_provider_flattens_profile(provider) -> None:
    assert provider.user_id == "user-provider"
    assert provider.contact_details["email"] == "ama@example.com"
    assert provider.location == {"region": "Greater Accra", "city": "Accra", "district": "Osu"}
    assert [w.relationship_to_provider for w in provider.witnesses] == ["brother"]


def test_one_provider_profile_per_user(providers, provider, provider_input) -> None:
    with pytest.raises(ConflictError):
        providers.create_provider("user-provider", provider_input(email="other@example.com"))


def test_average_rating_is_zero_without_ratings(providers, provider) -> None:
    assert providers.get_provider_average_rating(provider.id) == 0


def test_average_rating_of_five_three_four_is_four(providers, provider) -> None:
    for value in (5, 3, 4):
        _rate(providers, provider, value)

    assert providers.get_provider_average_rating(provider.id) == 4


def test_average_rating_is_rounded_to_one_decimal(providers, provider) -> None:
    for value in (5, 4, 4):
        _rate(providers, provider, value)

    assert providers.get_provider_average_rating(provider.id) == 4.3


@pytest.mark.parametrize("value", [0, 6, -1])
def test_rating_outside_one_to_five_is_rejected(providers, provider, value) -> None:
    with pytest.raises(ValidationError):
        _rate(providers, provider, value)

    assert providers.get_client_ratings(provider.id) == []


def test_provider_cannot_be_rated_by_itself(providers, provider) -> None:
    with pytest.raises(SelfRatingError):
        _rate(providers, provider, 3, client_id=provider.user_id)


def test_rating_unknown_provider(providers) -> None:
    with pytest.raises(NotFoundError):
        providers.add_client_rating("missing", ClientRatingCreate(client_id="c", rating=3))


def test_service_request_defaults_to_pending_then_completes(providers, provider) -> None:
    request = providers.add_service_request(provider.id, ProviderRequestCreate(service_id="S", client_id="C"))

    assert request.status == "pending"
    assert re.fullmatch(r"REQ-\d{8}-[0-9A-F]{6}", request.request_number)

    updated = providers.update_service_request_status(provider.id, request.request_id, "completed")
    assert updated.status == "completed"


def test_unknown_status_is_rejected_and_status_kept(providers, provider) -> None:
    request = providers.add_service_request(provider.id, ProviderRequestCreate(service_id="S", client_id="C"))

    with pytest.raises(InvalidStatusError):
        providers.update_service_request_status(provider.id, request.request_id, "bogus")

    stored = providers.get_service_requests(provider.id)
    assert [r.status for r in stored] == ["pending"]


def test_bogus_status_on_completed_request_is_a_validation_error(providers, provider) -> None:
    request = providers.add_service_request(provider.id, ProviderRequestCreate(service_id="S", client_id="C"))
    providers.update_service_request_status(provider.id, request.request_id, "completed")

    with pytest.raises(ValidationError):
        providers.update_service_request_status(provider.id, request.request_id, "bogus")


def test_terminal_requests_cannot_change_status(providers, provider) -> None:
    request = providers.add_service_request(provider.id, ProviderRequestCreate(service_id="S", client_id="C"))
    providers.update_service_request_status(provider.id, request.request_id, "cancelled")

    with pytest.raises(TerminalStatusError):
        providers.update_service_request_status(provider.id, request.request_id, "pending")

    assert providers.get_service_requests(provider.id)[0].status == "cancelled"


def test_status_update_for_unknown_request(providers, provider) -> None:
    with pytest.raises(NotFoundError):
        providers.update_service_request_status(provider.id, "missing", "completed")


def test_request_needs_a_client(providers, provider) -> None:
    with pytest.raises(ValidationError):
        providers.add_service_request(provider.id, ProviderRequestCreate(service_id="S"))


def test_requests_can_be_filtered_by_status(providers, provider) -> None:
    first = providers.add_service_request(provider.id, ProviderRequestCreate(service_id="S1", client_id="C"))
    providers.add_service_request(provider.id, ProviderRequestCreate(service_id="S2", client_id="C"))
    providers.update_service_request_status(provider.id, first.request_id, "in-progress")

    assert [r.service_id for r in providers.get_service_requests(provider.id, "in-progress")] == ["S1"]


def test_provider_stats(providers, provider) -> None:
    requests = [
        providers.add_service_request(provider.id, ProviderRequestCreate(service_id=f"S{i}", client_id="C"))
        for i in range(4)
    ]
    providers.update_service_request_status(provider.id, requests[0].request_id, "in-progress")
    providers.update_service_request_status(provider.id, requests[1].request_id, "completed")
    providers.update_service_request_status(provider.id, requests[2].request_id, "cancelled")
    _rate(providers, provider, 5)
    _rate(providers, provider, 2)

    assert providers.get_provider_stats(provider.id) == {
        "total_requests": 4,
        "pending": 1,
        "in_progress": 1,
        "completed": 1,
        "cancelled": 1,
        "average_rating": 3.5,
        "total_ratings": 2,
    }


def test_update_provider_merges_fields(providers, provider) -> None:
    updated = providers.update_provider(
        provider.id, ProviderUpdate(location={"region": "Volta", "city": "Ho"}, service_ids=["svc-1", "svc-2"])
    )

    assert updated.full_name == "Ama Mensah"
    assert updated.region == "Volta"
    assert updated.district is None
    assert sorted(updated.service_ids) == ["svc-1", "svc-2"]

    again = providers.update_provider(provider.id, ProviderUpdate(service_ids=["svc-2"]))
    assert list(again.service_ids) == ["svc-2"]


def test_update_witness_details_replaces_list(providers, provider) -> None:
    witnesses = [
        Witness(full_name="Kofi Mensah", contact="+233200000000", id_type="passport", id_number="G1234567", relationship="brother"),
        Witness(full_name="Efua Owusu", contact="+233200000001", id_type="voter", id_number="V99", relationship="friend"),
    ]

    updated = providers.update_witness_details(provider.id, witnesses)

    assert [w.full_name for w in updated.witnesses] == ["Kofi Mensah", "Efua Owusu"]
    assert updated.witnesses[0].contact == "+233200000000"


def test_witness_id_numbers_are_unique_per_provider(providers, provider) -> None:
    twice = Witness(full_name="A", contact="1", id_type="passport", id_number="DUP", relationship="friend")

    with pytest.raises(ValidationError):
        providers.update_witness_details(provider.id, [twice, twice])


def test_search_and_location_lookup(providers, provider, provider_input) -> None:
    other = providers.create_provider(
        "user-other",
        provider_input(
            email="yaw@example.com",
            full_name="Yaw Darko",
            location={"region": "Ashanti", "city": "Kumasi"},
        ),
    )

    assert [p.id for p in providers.search_providers("darko")] == [other.id]
    assert [p.id for p in providers.search_providers("accra")] == [provider.id]
    assert [p.id for p in providers.get_providers_by_location(city="kumasi")] == [other.id]
    with pytest.raises(ValidationError):
        providers.get_providers_by_location()


def test_delete_provider(providers, provider) -> None:
    assert providers.delete_provider(provider.id) is True
    assert providers.get_provider_by_id(provider.id) is None
    assert providers.delete_provider(provider.id) is False


def test_list_providers_filters_and_pages(providers, provider, provider_input) -> None:
    kumasi = providers.create_provider(
        "user-other",
        provider_input(email="yaw@example.com", full_name="Yaw Darko", location={"region": "Ashanti", "city": "Kumasi"}),
    )
    providers.update_provider(kumasi.id, ProviderUpdate(service_ids=["svc-9"]))
    _rate(providers, provider, 2)
    _rate(providers, kumasi, 5)

    everyone = providers.list_providers(PageRequest(page=1, limit=1))
    assert everyone["total"] == 2
    assert [p.id for p in everyone["items"]] == [provider.id]
    assert everyone["has_next"] is True

    assert [p.id for p in providers.list_providers(PageRequest(page=1, limit=5), city="kum")["items"]] == [kumasi.id]
    assert [p.id for p in providers.list_providers(PageRequest(page=1, limit=5), service_id="svc-9")["items"]] == [kumasi.id]
    assert [p.id for p in providers.list_providers(PageRequest(page=1, limit=5), min_rating=4)["items"]] == [kumasi.id]


def test_providers_by_service(providers, provider) -> None:
    providers.update_provider(provider.id, ProviderUpdate(service_ids=["svc-1", "svc-2"]))

    assert [p.id for p in providers.get_providers_by_service("svc-2")] == [provider.id]
    assert providers.get_providers_by_service("svc-3") == []


def test_provider_with_services_resolves_service_rows(providers, provider, lifecycle, category, service_input) -> None:
    service = lifecycle.create_service(service_input(category.id))
    providers.update_provider(provider.id, ProviderUpdate(service_ids=[service.id, "gone"]))

    result = providers.get_provider_with_services("user-provider")

    assert result["provider"].id == provider.id
    assert [s.id for s in result["services"]] == [service.id]
    assert providers.get_provider_with_services("nobody") is None


def test_get_witness_details(providers, provider) -> None:
    assert [w.id_number for w in providers.get_witness_details(provider.id)] == ["G1234567"]

    with pytest.raises(NotFoundError):
        providers.get_witness_details("missing")
