"""Unit tests for request drafts and distances."""

import pytest

from roadassist.domain.distance import garage_distance_km, haversine_km
from roadassist.domain.entities import InvalidDraft, Location, draft_request
from roadassist.domain.enums import ServiceType


class TestDraftRequest:
    def test_missing_service_type_rejected(self):
        with pytest.raises(InvalidDraft) as info:
            draft_request(None, location=Location(12.97, 77.59))
        assert info.value.field == "service_type"
        assert info.value.message == "Please select a service type."

    def test_missing_location_and_address_rejected(self):
        with pytest.raises(InvalidDraft) as info:
            draft_request(ServiceType.PUNCTURE, address="   ")
        assert info.value.field == "address"

    def test_captured_location_derives_address(self):
        draft = draft_request(ServiceType.BATTERY, location=Location(12.9716, 77.5946))
        assert draft.latitude == 12.9716
        assert draft.longitude == 77.5946
        assert draft.address == "Lat: 12.971600, Lng: 77.594600"

    def test_captured_location_keeps_typed_address(self):
        draft = draft_request(
            ServiceType.BATTERY,
            location=Location(12.9716, 77.5946),
            address="  MG Road  ",
        )
        assert draft.address == "MG Road"
        assert (draft.latitude, draft.longitude) == (12.9716, 77.5946)

    def test_manual_address_stores_zero_coordinates(self):
        draft = draft_request(ServiceType.TOWING, address="Near Forum Mall")
        assert draft.address == "Near Forum Mall"
        assert draft.latitude == 0
        assert draft.longitude == 0

    def test_blank_description_becomes_none(self):
        draft = draft_request(ServiceType.OTHER, address="Somewhere", description="")
        assert draft.problem_description is None

    def test_whitespace_only_description_becomes_none(self):
        draft = draft_request(ServiceType.OTHER, address="Somewhere", description="  \n\t ")
        assert draft.problem_description is None

    def test_description_is_trimmed(self):
        draft = draft_request(
            ServiceType.OTHER, address="Somewhere", description="  Flat tyre  "
        )
        assert draft.problem_description == "Flat tyre"

    def test_service_type_from_string(self):
        draft = draft_request("engine_issue", address="Somewhere")
        assert draft.service_type is ServiceType.ENGINE_ISSUE


class TestHaversine:
    def test_same_point_is_zero(self):
        assert haversine_km(12.97, 77.59, 12.97, 77.59) == 0.0

    def test_known_distance(self):
        # MG Road -> Indiranagar, Bengaluru ~4 km
        d = haversine_km(12.9756, 77.6050, 12.9719, 77.6412)
        assert 3.0 < d < 5.0

    def test_symmetric(self):
        d1 = haversine_km(12.0, 77.0, 13.0, 78.0)
        d2 = haversine_km(13.0, 78.0, 12.0, 77.0)
        assert abs(d1 - d2) < 1e-6


class TestGarageDistance:
    def test_rounded_to_one_decimal(self):
        d = garage_distance_km(12.9756, 77.6050, 12.9719, 77.6412)
        assert d == round(d, 1)

    def test_unknown_garage_position(self):
        assert garage_distance_km(None, None, 12.97, 77.59) is None
        assert garage_distance_km(12.97, None, 12.97, 77.59) is None

    def test_address_only_request(self):
        assert garage_distance_km(12.97, 77.59, 0.0, 0.0) is None
