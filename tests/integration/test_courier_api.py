"""Integration tests for the courier self-service endpoints."""

from __future__ import annotations

import pytest

from modules.couriers.models import Courier

pytestmark = pytest.mark.integration

ME_URL = "/api/v1/couriers/me/"


def test_me_returns_the_profile(client_for, make_courier):
    courier = make_courier()
    response = client_for(courier.user).get(ME_URL)
    assert response.status_code == 200
    assert response.json()["id"] == str(courier.id)
    assert response.json()["total_earnings"] == "0.00"


def test_me_without_profile(client_for, customer_user):
    response = client_for(customer_user).get(ME_URL)
    assert response.status_code == 404
    assert response.json()["code"] == "not_found"


def test_toggle_online(client_for, make_courier):
    courier = make_courier()
    response = client_for(courier.user).post(f"{ME_URL}online/", {"is_online": False}, format="json")
    assert response.status_code == 200
    assert response.json()["is_online"] is False
    assert Courier.objects.get(id=courier.id).is_online is False


def test_report_location(client_for, make_courier):
    courier = make_courier()
    response = client_for(courier.user).post(
        f"{ME_URL}location/", {"latitude": 12.95, "longitude": 77.61}, format="json"
    )
    assert response.status_code == 200
    courier.refresh_from_db()
    assert (courier.current_latitude, courier.current_longitude) == (12.95, 77.61)


def test_invalid_location(client_for, make_courier):
    courier = make_courier()
    response = client_for(courier.user).post(
        f"{ME_URL}location/", {"latitude": 120, "longitude": 0}, format="json"
    )
    assert response.status_code == 400
    assert response.json()["code"] == "invalid_coordinates"
