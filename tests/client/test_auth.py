"""Tests for the authentication signal."""

from unittest.mock import MagicMock

from syncwatch.client.auth import AuthSignal


class TestAuthSignal:
    """Tests for AuthSignal."""

    def test_notifies_on_change(self) -> None:
        """Should notify listeners when the flag changes."""
        auth = AuthSignal()
        seen: list[bool] = []
        auth.subscribe(seen.append)

        auth.set(True)
        auth.set(False)

        assert seen == [True, False]

    def test_no_notification_without_change(self) -> None:
        """Should not notify when the value is unchanged."""
        auth = AuthSignal(authenticated=True)
        seen: list[bool] = []
        auth.subscribe(seen.append)

        auth.set(True)

        assert seen == []

    def test_unsubscribe(self) -> None:
        """Should stop notifying after unsubscribe."""
        auth = AuthSignal()
        seen: list[bool] = []
        unsubscribe = auth.subscribe(seen.append)

        unsubscribe()
        auth.set(True)

        assert seen == []

    def test_failing_listener_does_not_block_others(self) -> None:
        """A raising listener should not prevent delivery to the others."""
        auth = AuthSignal()
        seen: list[bool] = []
        auth.subscribe(MagicMock(side_effect=RuntimeError("boom")))
        auth.subscribe(seen.append)

        auth.set(True)

        assert seen == [True]
        assert auth.authenticated is True

    def test_check_uses_client_probe(self) -> None:
        """Should update the flag from the client's auth probe."""
        auth = AuthSignal(authenticated=True)
        client = MagicMock()
        client.check_auth.return_value = False

        assert auth.check(client) is False
        assert auth.authenticated is False
