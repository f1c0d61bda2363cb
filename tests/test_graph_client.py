"""Tests for FacebookGraphClient with the SDK patched out."""

from unittest.mock import MagicMock, patch

import pytest
from facebook_business.exceptions import FacebookRequestError

from conftest import make_record
from token_manager.core.exceptions import APIError, AuthenticationError
from token_manager.platforms.facebook.graph_client import FacebookGraphClient

MODULE = "token_manager.platforms.facebook.graph_client"


class StubRequestError(FacebookRequestError):
    """FacebookRequestError with canned accessors."""

    def __init__(self, status=400, code=190, message="Error validating access token"):
        Exception.__init__(self, message)
        self._status = status
        self._code = code
        self._msg = message

    def http_status(self):
        return self._status

    def api_error_code(self):
        return self._code

    def api_error_message(self):
        return self._msg


@pytest.fixture
def sdk():
    with patch(f"{MODULE}.FacebookSession") as session_cls, \
            patch(f"{MODULE}.FacebookAdsApi") as api_cls:
        api = api_cls.return_value
        api.call.return_value.json.return_value = {"id": "999", "name": "Report Bot"}
        yield session_cls, api_cls, api


class TestFacebookGraphClient:

    def test_get_uses_stored_credential(self, store, sdk):
        session_cls, api_cls, api = sdk
        store.put(make_record("111", days_left=30, credential="EAAB-stored"))
        client = FacebookGraphClient("111", store, api_version="v18.0")

        result = client.get("/me/accounts", {"limit": 5})

        assert result == {"id": "999", "name": "Report Bot"}
        session_cls.assert_called_once_with(
            app_id="111", app_secret=None, access_token="EAAB-stored", timeout=30,
        )
        api_cls.assert_called_once_with(session_cls.return_value, api_version="v18.0")
        api.call.assert_called_once_with("GET", ("me", "accounts"), params={"limit": 5})

    def test_post(self, store, sdk):
        _, _, api = sdk
        store.put(make_record("111", days_left=30))
        client = FacebookGraphClient("111", store)

        client.post("/act_123/adcreatives", {"name": "test"})

        api.call.assert_called_once_with("POST", ("act_123", "adcreatives"), params={"name": "test"})

    def test_get_app_info(self, store, sdk):
        _, _, api = sdk
        store.put(make_record("111", days_left=30))

        FacebookGraphClient("111", store).get_app_info()

        api.call.assert_called_once_with("GET", ("111",), params={})

    def test_rebuilds_api_after_renewal(self, store, sdk):
        session_cls, api_cls, _ = sdk
        store.put(make_record("111", days_left=30, credential="first"))
        client = FacebookGraphClient("111", store)

        client.get("/me")
        client.get("/me")
        assert api_cls.call_count == 1

        store.put(make_record("111", days_left=60, credential="second"))
        client.get("/me")

        assert api_cls.call_count == 2
        assert session_cls.call_args.kwargs["access_token"] == "second"

    def test_no_stored_credential(self, store, sdk):
        client = FacebookGraphClient("111", store)

        with pytest.raises(AuthenticationError):
            client.get("/me")

    def test_request_error_becomes_api_error(self, store, sdk):
        _, _, api = sdk
        api.call.side_effect = StubRequestError(status=400, code=190)
        store.put(make_record("111", days_left=30))

        with pytest.raises(APIError) as exc_info:
            FacebookGraphClient("111", store).get("/me")

        assert exc_info.value.status_code == 400
        assert exc_info.value.details["error_code"] == 190
        assert "Error validating access token" in exc_info.value.message

    def test_verify_token(self, store, sdk):
        store.put(make_record("111", days_left=30))
        assert FacebookGraphClient("111", store).verify_token() is True

    def test_verify_token_rejected(self, store, sdk):
        _, _, api = sdk
        api.call.side_effect = StubRequestError()
        store.put(make_record("111", days_left=30))

        assert FacebookGraphClient("111", store).verify_token() is False
