import pytest
from rest_framework.test import APIClient


@pytest.fixture()
def client_for():
    """Build an APIClient force-authenticated as the given user."""

    def _client(user) -> APIClient:
        client = APIClient()
        client.force_authenticate(user=user)
        return client

    return _client
