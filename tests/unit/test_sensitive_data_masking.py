import pytest

from config.settings import MASK, mask_sensitive_data

pytestmark = pytest.mark.unit


class TestSensitiveDataMasking:
    def test_verification_code_key_masked(self):
        event_dict = {"event": "delivery.assigned", "verification_code": "482913"}
        result = mask_sensitive_data(None, None, event_dict)
        assert result["verification_code"] == MASK

    def test_verification_code_in_text_masked(self):
        event_dict = {"event": "test", "data": "verification_code=482913 order=7"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "482913" not in result["data"]
        assert result["data"] == f"verification_code={MASK} order=7"

    def test_password_masked(self):
        event_dict = {"event": "test", "data": "password='s3cret123'"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "s3cret123" not in result["data"]
        assert MASK in result["data"]

    def test_token_masked(self):
        event_dict = {"event": "test", "header": "token=abc123xyz"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "abc123xyz" not in result["header"]
        assert MASK in result["header"]

    def test_jwt_pair_masked(self):
        event_dict = {"event": "login", "access": "eyJ.a.b", "refresh": "eyJ.c.d"}
        result = mask_sensitive_data(None, None, event_dict)
        assert result["access"] == MASK
        assert result["refresh"] == MASK

    def test_non_sensitive_data_unchanged(self):
        event_dict = {"event": "dispatch.offer_issued", "order_id": "ORD-001", "attempt_number": 2}
        result = mask_sensitive_data(None, None, event_dict)
        assert result["order_id"] == "ORD-001"
        assert result["attempt_number"] == 2
        assert result["event"] == "dispatch.offer_issued"
