"""Integration tests for GET /api/v1/me."""

import pytest

pytestmark = pytest.mark.integration

ME_URL = "/api/v1/me"


class TestMeEndpoint:
    def test_requires_authentication(self, api_client):
        response = api_client.get(ME_URL)
        assert response.status_code == 401

    def test_customer_sees_linked_profile(self, customer_client, customer):
        data = customer_client.get(ME_URL).json()

        assert data == {
            "user": "ana",
            "role": "CUSTOMER",
            "customer_id": str(customer.id),
        }

    def test_staff_roles(self, admin_client, sales_client):
        assert admin_client.get(ME_URL).json()["role"] == "ADMIN"
        sales = sales_client.get(ME_URL).json()
        assert sales["role"] == "SALES"
        assert sales["customer_id"] is None

    def test_jwt_round_trip(self, api_client, customer_user):
        token = api_client.post(
            "/api/v1/auth/token/",
            {"username": "ana", "password": "x"},
            format="json",
        ).json()["access"]
        api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")

        response = api_client.get(ME_URL)

        assert response.status_code == 200
        assert response.json()["role"] == "CUSTOMER"

    def test_bad_token(self, api_client):
        api_client.credentials(HTTP_AUTHORIZATION="Bearer not-a-token")
        response = api_client.get(ME_URL)
        assert response.status_code == 401
