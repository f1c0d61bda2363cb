"""Facebook Graph API client bound to a managed identity.

This client makes Graph API calls with whatever credential the store
currently holds for an app, so callers always use the latest renewed
token without restarting.

Architecture:
- FacebookGraphClient: one FacebookAdsApi instance per client (no global default)
- Credential looked up in the store on every call
- SDK request errors surfaced as APIError
"""

from typing import Any, Dict, Optional, Tuple

from facebook_business.api import FacebookAdsApi, FacebookSession
from facebook_business.exceptions import FacebookRequestError
from loguru import logger

from token_manager.core.constants import FACEBOOK_API_VERSION, REQUEST_TIMEOUT_SECONDS
from token_manager.core.exceptions import APIError, AuthenticationError
from token_manager.core.protocols import CredentialStore


class FacebookGraphClient:
    """Graph API client using the stored credential of one app.

    Attributes:
        identity_id: Facebook App ID whose credential is used
        api_version: Graph API version
    """

    def __init__(
        self,
        identity_id: str,
        store: CredentialStore,
        app_secret: Optional[str] = None,
        api_version: str = FACEBOOK_API_VERSION,
        timeout: int = REQUEST_TIMEOUT_SECONDS,
    ):
        """Initialize the client.

        Args:
            identity_id: Facebook App ID
            store: Credential store holding the app's credential
            app_secret: Optional app secret (enables appsecret_proof)
            api_version: Graph API version (default: v18.0)
            timeout: Request timeout in seconds
        """
        self.identity_id = identity_id
        self.store = store
        self.app_secret = app_secret
        self.api_version = api_version
        self.timeout = timeout

        self._api: Optional[FacebookAdsApi] = None
        self._api_credential: Optional[str] = None

    def get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Execute a GET request.

        Args:
            endpoint: Graph path, e.g. "/me/accounts"
            params: Query parameters

        Returns:
            Decoded response body

        Raises:
            AuthenticationError: If no credential is stored for the app
            APIError: If the request fails
        """
        return self._call("GET", endpoint, params or {})

    def post(self, endpoint: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Execute a POST request.

        Args:
            endpoint: Graph path
            data: Form parameters

        Returns:
            Decoded response body

        Raises:
            AuthenticationError: If no credential is stored for the app
            APIError: If the request fails
        """
        return self._call("POST", endpoint, data or {})

    def get_app_info(self) -> Dict[str, Any]:
        """Get the app node (id, name, link...)."""
        return self.get(f"/{self.identity_id}")

    def verify_token(self) -> bool:
        """Check the stored credential with a lightweight /me call.

        Returns:
            True if the call succeeds, False if the API rejects it

        Raises:
            AuthenticationError: If no credential is stored for the app
        """
        try:
            me = self.get("/me", {"fields": "id,name"})
        except APIError as e:
            logger.warning(f"App {self.identity_id}: stored token failed verification: {e}")
            return False

        logger.info(f"App {self.identity_id}: token valid for {me.get('name', me.get('id'))}")
        return True

    def _credential(self) -> str:
        record = self.store.get(self.identity_id)
        if record is None:
            raise AuthenticationError(
                f"No stored token for app {self.identity_id}",
                details={"hint": "run `token-manager init` first"},
            )
        return record.credential

    def _get_api(self) -> FacebookAdsApi:
        """API instance for the current credential, rebuilt after a renewal."""
        credential = self._credential()
        if self._api is None or credential != self._api_credential:
            session = FacebookSession(
                app_id=self.identity_id,
                app_secret=self.app_secret,
                access_token=credential,
                timeout=self.timeout,
            )
            self._api = FacebookAdsApi(session, api_version=self.api_version)
            self._api_credential = credential
            logger.debug(f"Facebook Ads API initialized for app {self.identity_id} ({self.api_version})")
        return self._api

    @staticmethod
    def _path(endpoint: str) -> Tuple[str, ...]:
        return tuple(part for part in endpoint.strip("/").split("/") if part)

    def _call(self, method: str, endpoint: str, params: Dict[str, Any]) -> Dict[str, Any]:
        api = self._get_api()
        logger.debug(f"{method} {endpoint}")

        try:
            response = api.call(method, self._path(endpoint), params=params)
        except FacebookRequestError as e:
            raise APIError(
                f"Graph API {method} {endpoint} failed: {e.api_error_message()}",
                status_code=e.http_status(),
                details={"identity_id": self.identity_id, "error_code": e.api_error_code()},
            ) from e

        return response.json()
