"""Tests for the syncwatch HTTP client."""

import json

import httpx
import pytest

from syncwatch.client.api import (
    APIError,
    AuthenticationError,
    ConflictError,
    CSRFTokenError,
    HTTPClient,
    InvalidResponseError,
    NotFoundError,
    RateLimitError,
    StartSyncResponse,
)
from syncwatch.core.config import ServerConfig
from syncwatch.core.status import SyncOptions
from syncwatch.core.types import SyncState


def make_config(
    server_url: str = "http://test", session_token: str | None = "session123"
) -> ServerConfig:
    """Create a ServerConfig for testing."""
    return ServerConfig(server_url=server_url, session_token=session_token)


class TestStartSyncResponse:
    """Tests for StartSyncResponse dataclass."""

    def test_from_dict(self) -> None:
        """Should create StartSyncResponse from dictionary."""
        response = StartSyncResponse.from_dict(
            {"success": True, "message": "Sync started", "status": "syncing"}
        )

        assert response.success is True
        assert response.message == "Sync started"
        assert response.status == "syncing"

    def test_from_non_dict(self) -> None:
        """Should fall back to defaults for unexpected bodies."""
        response = StartSyncResponse.from_dict(None)

        assert response.success is True
        assert response.message == "Sync started"


class TestHTTPClientStatus:
    """Tests for status polling."""

    def test_get_status(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should parse the status body."""
        httpx_mock.add_response(
            url="http://test/api/sync/status",
            json={
                "status": "syncing",
                "isRunning": True,
                "progressPercent": 50,
                "syncingProjectId": "proj-1",
            },
        )

        with HTTPClient(make_config()) as client:
            status = client.get_status()

        assert status.status == SyncState.SYNCING
        assert status.progress_percent == 50.0
        assert status.syncing_project_id == "proj-1"

    def test_sends_session_cookie(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should carry the session cookie."""
        httpx_mock.add_response(url="http://test/api/sync/status", json={"status": "idle"})

        with HTTPClient(make_config(session_token="abc")) as client:
            client.get_status()

        request = httpx_mock.get_requests()[0]
        assert "linear-bot-session=abc" in request.headers["cookie"]

    def test_get_status_unauthenticated(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should raise AuthenticationError on 401."""
        httpx_mock.add_response(url="http://test/api/sync/status", status_code=401)

        with HTTPClient(make_config()) as client, pytest.raises(AuthenticationError):
            client.get_status()

    def test_get_status_server_error(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should raise APIError with the server message on 5xx."""
        httpx_mock.add_response(
            url="http://test/api/sync/status",
            status_code=503,
            json={"error": "Database unavailable"},
        )

        with HTTPClient(make_config()) as client, pytest.raises(APIError) as exc_info:
            client.get_status()

        assert exc_info.value.status_code == 503
        assert exc_info.value.message == "Database unavailable"

    def test_get_status_invalid_json(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should raise InvalidResponseError on a non-JSON body."""
        httpx_mock.add_response(url="http://test/api/sync/status", content=b"<html>")

        with HTTPClient(make_config()) as client, pytest.raises(InvalidResponseError):
            client.get_status()

    def test_get_status_malformed(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should raise InvalidResponseError on an unknown status value."""
        httpx_mock.add_response(url="http://test/api/sync/status", json={"status": "paused"})

        with HTTPClient(make_config()) as client, pytest.raises(InvalidResponseError):
            client.get_status()

    @pytest.mark.parametrize(
        "body",
        [
            {"status": "syncing", "stats": 5},
            {"status": "syncing", "phases": ["x"]},
            {"status": "syncing", "partialSyncProgress": "half"},
        ],
    )
    def test_get_status_malformed_nested(self, httpx_mock, body) -> None:  # type: ignore[no-untyped-def]
        """Should raise InvalidResponseError on malformed nested fields."""
        httpx_mock.add_response(url="http://test/api/sync/status", json=body)

        with HTTPClient(make_config()) as client, pytest.raises(InvalidResponseError):
            client.get_status()

    def test_get_status_network_error(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Network failures surface as httpx errors."""
        httpx_mock.add_exception(httpx.ConnectError("Connection refused"))

        with HTTPClient(make_config()) as client, pytest.raises(httpx.HTTPError):
            client.get_status()


class TestHTTPClientAuth:
    """Tests for the authentication probe."""

    def test_check_auth_success(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should return True when the server accepts the session."""
        httpx_mock.add_response(url="http://test/api/config", json={})

        with HTTPClient(make_config()) as client:
            assert client.check_auth() is True

    def test_check_auth_rejected(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should return False on 401."""
        httpx_mock.add_response(url="http://test/api/config", status_code=401)

        with HTTPClient(make_config()) as client:
            assert client.check_auth() is False

    def test_check_auth_network_error(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should return False when the server is unreachable."""
        httpx_mock.add_exception(httpx.ConnectError("Connection refused"))

        with HTTPClient(make_config()) as client:
            assert client.check_auth() is False


class TestHTTPClientStartSync:
    """Tests for start-sync requests."""

    def test_start_sync(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should send the password and options with the CSRF header."""
        httpx_mock.add_response(url="http://test/api/csrf-token", json={"csrfToken": "tok-1"})
        httpx_mock.add_response(
            url="http://test/api/sync",
            method="POST",
            json={"success": True, "message": "Sync started", "status": "syncing"},
        )

        with HTTPClient(make_config()) as client:
            response = client.start_sync(
                SyncOptions(phases=["active_projects"], is_full_sync=False), "secret"
            )

        assert response.message == "Sync started"
        post = httpx_mock.get_requests()[1]
        assert post.headers["X-CSRF-Token"] == "tok-1"
        assert json.loads(post.content) == {
            "adminPassword": "secret",
            "syncOptions": {
                "phases": ["active_projects"],
                "isFullSync": False,
                "deepHistorySync": False,
                "incrementalSync": False,
            },
        }

    def test_start_project_sync(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should post to the project endpoint."""
        httpx_mock.add_response(url="http://test/api/csrf-token", json={"csrfToken": "tok-1"})
        httpx_mock.add_response(
            url="http://test/api/sync/project/proj-7",
            method="POST",
            json={"success": True, "message": "Project sync started"},
        )

        with HTTPClient(make_config()) as client:
            response = client.start_project_sync("proj-7")

        assert response.message == "Project sync started"

    def test_csrf_token_cached(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should fetch the CSRF token once."""
        httpx_mock.add_response(url="http://test/api/csrf-token", json={"csrfToken": "tok-1"})
        httpx_mock.add_response(
            url="http://test/api/sync/project/a", method="POST", json={"success": True}
        )
        httpx_mock.add_response(
            url="http://test/api/sync/project/b", method="POST", json={"success": True}
        )

        with HTTPClient(make_config()) as client:
            client.start_project_sync("a")
            client.start_project_sync("b")

        token_requests = [
            r for r in httpx_mock.get_requests() if r.url.path == "/api/csrf-token"
        ]
        assert len(token_requests) == 1

    def test_forbidden_clears_csrf_token(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """A 403 should make the next request fetch a fresh token."""
        httpx_mock.add_response(url="http://test/api/csrf-token", json={"csrfToken": "old"})
        httpx_mock.add_response(
            url="http://test/api/sync/project/a",
            method="POST",
            status_code=403,
            json={"error": "Invalid CSRF token"},
        )
        httpx_mock.add_response(url="http://test/api/csrf-token", json={"csrfToken": "new"})
        httpx_mock.add_response(
            url="http://test/api/sync/project/a", method="POST", json={"success": True}
        )

        with HTTPClient(make_config()) as client:
            with pytest.raises(APIError, match="Invalid CSRF token"):
                client.start_project_sync("a")
            client.start_project_sync("a")

        post = httpx_mock.get_requests()[-1]
        assert post.headers["X-CSRF-Token"] == "new"

    def test_csrf_token_provider(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should use the provided token instead of fetching one."""
        httpx_mock.add_response(
            url="http://test/api/sync/project/a", method="POST", json={"success": True}
        )

        with HTTPClient(make_config(), csrf_token_provider=lambda: "from-page") as client:
            client.start_project_sync("a")

        requests = httpx_mock.get_requests()
        assert len(requests) == 1
        assert requests[0].headers["X-CSRF-Token"] == "from-page"

    def test_csrf_token_unavailable(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should raise CSRFTokenError when the token endpoint fails."""
        httpx_mock.add_response(url="http://test/api/csrf-token", status_code=500)

        with HTTPClient(make_config()) as client, pytest.raises(CSRFTokenError):
            client.start_project_sync("a")

    def test_conflict(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should raise ConflictError with the server message on 409."""
        httpx_mock.add_response(url="http://test/api/csrf-token", json={"csrfToken": "t"})
        httpx_mock.add_response(
            url="http://test/api/sync/project/a",
            method="POST",
            status_code=409,
            json={"success": False, "message": "Another sync is running"},
        )

        with HTTPClient(make_config()) as client, pytest.raises(ConflictError) as exc_info:
            client.start_project_sync("a")

        assert exc_info.value.message == "Another sync is running"
        assert exc_info.value.status_code == 409

    def test_rate_limited(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should raise RateLimitError on 429."""
        httpx_mock.add_response(url="http://test/api/csrf-token", json={"csrfToken": "t"})
        httpx_mock.add_response(
            url="http://test/api/sync",
            method="POST",
            status_code=429,
            json={"message": "Please wait before syncing again"},
        )

        with HTTPClient(make_config()) as client, pytest.raises(RateLimitError):
            client.start_sync(admin_password="secret")

    def test_invalid_password(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should raise AuthenticationError on 401."""
        httpx_mock.add_response(url="http://test/api/csrf-token", json={"csrfToken": "t"})
        httpx_mock.add_response(
            url="http://test/api/sync",
            method="POST",
            status_code=401,
            json={"error": "Invalid admin password"},
        )

        with HTTPClient(make_config()) as client, pytest.raises(AuthenticationError):
            client.start_sync(admin_password="wrong")

    def test_project_not_found(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should raise NotFoundError on 404."""
        httpx_mock.add_response(url="http://test/api/csrf-token", json={"csrfToken": "t"})
        httpx_mock.add_response(
            url="http://test/api/sync/project/missing", method="POST", status_code=404
        )

        with HTTPClient(make_config()) as client, pytest.raises(NotFoundError):
            client.start_project_sync("missing")
