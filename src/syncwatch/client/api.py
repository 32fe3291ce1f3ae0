"""HTTP client for the sync service API.

This module provides:
- HTTPClient: HTTP client for communicating with the server
- Sync status polling and start-sync requests
- CSRF token acquisition for state-changing requests
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import httpx

from syncwatch.core.config import ServerConfig
from syncwatch.core.status import SyncOptions, SyncStatus

logger = logging.getLogger(__name__)

CSRF_HEADER = "X-CSRF-Token"


class APIError(Exception):
    """Base exception for API errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AuthenticationError(APIError):
    """Authentication failed."""


class ConflictError(APIError):
    """A sync is already running."""


class RateLimitError(APIError):
    """Sync requested too soon after the previous one."""


class NotFoundError(APIError):
    """Resource not found."""


class InvalidResponseError(APIError):
    """Response body could not be parsed."""


class CSRFTokenError(APIError):
    """No CSRF token could be obtained."""


@dataclass
class StartSyncResponse:
    """Response of a start-sync request."""

    success: bool
    message: str
    status: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> StartSyncResponse:
        """Create from API response dictionary."""
        if not isinstance(data, dict):
            data = {}
        return cls(
            success=bool(data.get("success", True)),
            message=data.get("message") or "Sync started",
            status=data.get("status"),
        )


def _error_message(response: httpx.Response, default: str) -> str:
    """Extract the human-readable message from an error response."""
    try:
        data = response.json()
    except ValueError:
        return default
    if not isinstance(data, dict):
        return default
    return str(data.get("message") or data.get("error") or data.get("detail") or default)


class HTTPClient:
    """HTTP client for the sync service API."""

    def __init__(
        self,
        config: ServerConfig,
        csrf_token_provider: Callable[[], str | None] | None = None,
    ) -> None:
        """Initialize the HTTP client.

        Args:
            config: Server configuration with URL, session, and settings.
            csrf_token_provider: Optional callable returning the CSRF token.
                When omitted, the token is fetched from the server and cached.
        """
        self._config = config
        self._csrf_token_provider = csrf_token_provider
        self._csrf_token: str | None = None
        self._client = httpx.Client(
            base_url=config.server_url,
            timeout=config.timeout,
            verify=config.verify_ssl,
            cookies=config.cookies,
        )

    @property
    def config(self) -> ServerConfig:
        """Get the server configuration."""
        return self._config

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> HTTPClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    def _handle_response(self, response: httpx.Response) -> httpx.Response:
        """Handle API response and raise appropriate exceptions."""
        if response.status_code == 401:
            raise AuthenticationError(
                _error_message(response, "Not authenticated"), 401
            )
        if response.status_code == 404:
            raise NotFoundError(_error_message(response, "Resource not found"), 404)
        if response.status_code == 409:
            raise ConflictError(
                _error_message(response, "Sync already in progress"), 409
            )
        if response.status_code == 429:
            raise RateLimitError(
                _error_message(response, "Too many sync requests"), 429
            )
        if response.status_code >= 400:
            raise APIError(
                _error_message(response, f"Server error ({response.status_code})"),
                response.status_code,
            )
        return response

    def _json(self, response: httpx.Response) -> Any:
        """Decode a JSON body or raise InvalidResponseError."""
        try:
            return response.json()
        except ValueError as e:
            raise InvalidResponseError(
                f"Invalid JSON from {response.request.url.path}: {e}",
                response.status_code,
            ) from e

    # === Authentication ===

    def check_auth(self) -> bool:
        """Check if the session is authenticated.

        Probes a protected endpoint; any failure counts as unauthenticated.

        Returns:
            True if the server accepted the session.
        """
        try:
            response = self._client.get("/api/config")
        except httpx.HTTPError as e:
            logger.debug("Auth check failed: %s", e)
            return False
        return response.is_success

    # === CSRF ===

    def get_csrf_token(self) -> str:
        """Get the CSRF token for state-changing requests.

        Returns:
            The token.

        Raises:
            CSRFTokenError: If no token could be obtained.
        """
        if self._csrf_token_provider is not None:
            token = self._csrf_token_provider()
            if not token:
                raise CSRFTokenError("Failed to get CSRF token")
            return token

        if self._csrf_token:
            return self._csrf_token

        try:
            response = self._client.get("/api/csrf-token")
        except httpx.HTTPError as e:
            raise CSRFTokenError(f"Failed to get CSRF token: {e}") from e
        if not response.is_success:
            raise CSRFTokenError("Failed to get CSRF token", response.status_code)

        data = self._json(response)
        token = data.get("csrfToken") if isinstance(data, dict) else None
        if not token:
            raise CSRFTokenError("Failed to get CSRF token", response.status_code)
        self._csrf_token = str(token)
        return self._csrf_token

    def clear_csrf_token(self) -> None:
        """Forget the cached CSRF token (e.g., after logout)."""
        self._csrf_token = None

    def _csrf_post(self, url: str, body: dict[str, Any] | None = None) -> httpx.Response:
        """Make a CSRF-protected POST request."""
        headers = {CSRF_HEADER: self.get_csrf_token()}
        if body is None:
            response = self._client.post(url, headers=headers)
        else:
            response = self._client.post(url, headers=headers, json=body)
        if response.status_code == 403:
            # Stale token; fetch a fresh one on the next request
            self.clear_csrf_token()
        return response

    # === Sync status ===

    def get_status(self) -> SyncStatus:
        """Get the current status of the sync job.

        Returns:
            Parsed status snapshot.

        Raises:
            AuthenticationError: If the session is not authenticated.
            InvalidResponseError: If the body cannot be parsed.
            APIError: For any other error status.
        """
        response = self._handle_response(self._client.get("/api/sync/status"))
        data = self._json(response)
        try:
            return SyncStatus.from_dict(data)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise InvalidResponseError(
                f"Malformed sync status: {e}", response.status_code
            ) from e

    # === Start sync ===

    def start_sync(
        self,
        options: SyncOptions | None = None,
        admin_password: str | None = None,
    ) -> StartSyncResponse:
        """Ask the server to start a full or partial sync.

        Args:
            options: Sync options, forwarded unchanged.
            admin_password: Credential required by the server to start a sync.

        Returns:
            Server acknowledgement.

        Raises:
            ConflictError: If a sync is already running.
            RateLimitError: If the previous sync was too recent.
            APIError: For any other error status.
        """
        body: dict[str, Any] = {}
        if admin_password is not None:
            body["adminPassword"] = admin_password
        if options is not None:
            body["syncOptions"] = options.to_dict()
        response = self._handle_response(self._csrf_post("/api/sync", body))
        return StartSyncResponse.from_dict(self._json(response))

    def start_project_sync(self, project_id: str) -> StartSyncResponse:
        """Ask the server to sync a single project.

        Args:
            project_id: Project identifier.

        Returns:
            Server acknowledgement.

        Raises:
            ConflictError: If another sync is already running.
            RateLimitError: If the previous sync was too recent.
            APIError: For any other error status.
        """
        response = self._handle_response(
            self._csrf_post(f"/api/sync/project/{project_id}")
        )
        return StartSyncResponse.from_dict(self._json(response))
