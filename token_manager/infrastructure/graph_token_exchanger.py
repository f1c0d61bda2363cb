"""Facebook Graph API token exchanger.

This module talks to the Graph API OAuth endpoints:

- oauth/access_token (grant_type=fb_exchange_token): turns a valid
  credential into a long-lived one (about 60 days, platform-determined)
- debug_token: reports validity, scopes and the absolute expiry instant

The exchange response does not reliably carry an absolute expiry, so
introspection is the single source of truth for expires_at. No retries
happen here; the renewal sweep decides when to try again.
"""

from typing import Any, Dict, Iterable, Optional

import requests
from loguru import logger

from shared.utils.logging import mask_secret
from token_manager.core.constants import (
    EXCHANGE_GRANT_TYPE,
    FACEBOOK_API_VERSION,
    FACEBOOK_GRAPH_URL,
    REQUEST_TIMEOUT_SECONDS,
)
from token_manager.core.exceptions import APIError, ExchangeError, IntrospectionError
from token_manager.domain.models import TokenIntrospection


def _redact(text: str, secrets: Iterable[Optional[str]]) -> str:
    """Mask secret values that leak into exception messages (request URLs)."""
    for secret in secrets:
        if secret:
            text = text.replace(secret, mask_secret(secret))
    return text


class GraphTokenExchanger:
    """Token exchange and introspection against the Facebook Graph API.

    Attributes:
        base_url: Versioned Graph API root, e.g. https://graph.facebook.com/v18.0
        timeout: Per-request timeout in seconds
    """

    def __init__(
        self,
        api_version: str = FACEBOOK_API_VERSION,
        timeout: int = REQUEST_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
        graph_url: str = FACEBOOK_GRAPH_URL,
    ):
        """Initialize the exchanger.

        Args:
            api_version: Graph API version (default: v18.0)
            timeout: Request timeout in seconds (default: 30)
            session: Optional requests session (tests inject a fake one)
            graph_url: Graph API host
        """
        self.base_url = f"{graph_url.rstrip('/')}/{api_version}"
        self.timeout = timeout
        self._session = session or requests.Session()

        logger.debug(f"GraphTokenExchanger initialized ({self.base_url})")

    def exchange_for_long_lived(
        self,
        identity_id: str,
        client_secret: str,
        current_credential: str,
    ) -> str:
        """Exchange a still-valid credential for a long-lived one.

        Args:
            identity_id: Facebook app ID
            client_secret: Facebook app secret
            current_credential: Credential to exchange (must still be valid)

        Returns:
            New long-lived credential

        Raises:
            ExchangeError: If the platform rejects the exchange or the network fails
        """
        logger.info(f"Exchanging credential for app {identity_id}")

        params = {
            "grant_type": EXCHANGE_GRANT_TYPE,
            "client_id": identity_id,
            "client_secret": client_secret,
            "fb_exchange_token": current_credential,
        }

        try:
            payload = self._get_json(
                "oauth/access_token",
                params,
                secrets=(client_secret, current_credential),
            )
        except APIError as e:
            raise ExchangeError(
                f"Token exchange failed for app {identity_id}: {e.message}",
                status_code=e.status_code,
                response_body=e.response_body,
                details={"identity_id": identity_id, **e.details},
            ) from e

        new_credential = payload.get("access_token")
        if not new_credential:
            raise ExchangeError(
                "No access_token in exchange response",
                details={
                    "identity_id": identity_id,
                    "response_keys": sorted(payload.keys()),
                },
            )

        logger.success(
            f"Credential exchanged for app {identity_id} ({mask_secret(new_credential)})"
        )
        return new_credential

    def introspect(self, credential: str) -> TokenIntrospection:
        """Query validity and expiry metadata of a credential.

        Args:
            credential: Credential to inspect (original or freshly exchanged)

        Returns:
            TokenIntrospection from the debug_token payload

        Raises:
            IntrospectionError: If the call fails or returns no data
        """
        logger.debug(f"Introspecting credential {mask_secret(credential)}")

        params = {
            "input_token": credential,
            "access_token": credential,
        }

        try:
            payload = self._get_json("debug_token", params, secrets=(credential,))
        except APIError as e:
            raise IntrospectionError(
                f"Token introspection failed: {e.message}",
                status_code=e.status_code,
                response_body=e.response_body,
                details=e.details,
            ) from e

        data = payload.get("data")
        if not isinstance(data, dict):
            raise IntrospectionError(
                "No data in debug_token response",
                details={"response_keys": sorted(payload.keys())},
            )

        introspection = TokenIntrospection.from_graph(data)
        logger.debug(
            f"Credential for app {introspection.identity_id}: valid={introspection.is_valid}, "
            f"expires_at={introspection.expires_at}"
        )
        return introspection

    def close(self) -> None:
        """Close the HTTP session."""
        if self._session:
            self._session.close()

    def _get_json(
        self,
        path: str,
        params: Dict[str, Any],
        secrets: Iterable[Optional[str]] = (),
    ) -> Dict[str, Any]:
        """Execute a GET request and return the decoded JSON object.

        Args:
            path: Path below the versioned Graph root
            params: Query parameters (never logged, they carry secrets)
            secrets: Values to mask in error messages

        Returns:
            Decoded JSON object

        Raises:
            APIError: On network failure, non-200 status or non-object body
        """
        url = f"{self.base_url}/{path}"

        try:
            response = self._session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            message = _redact(str(e), secrets)
            logger.error(f"Graph API request to /{path} failed: {message}")
            raise APIError(
                f"Request to /{path} failed: {type(e).__name__}",
                details={"error": message},
            ) from e

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if response.status_code != 200:
            error = payload.get("error") if isinstance(payload, dict) else None
            message = (
                error.get("message") if isinstance(error, dict) and error.get("message")
                else f"Graph API returned HTTP {response.status_code}"
            )
            raise APIError(
                message,
                status_code=response.status_code,
                response_body=_redact(response.text or "", secrets),
                details={"error": error} if error else {},
            )

        if not isinstance(payload, dict):
            raise APIError(
                f"Unexpected response format from /{path}",
                status_code=response.status_code,
                response_body=_redact(response.text or "", secrets),
            )

        return payload
