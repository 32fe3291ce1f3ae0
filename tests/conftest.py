"""Shared fixtures for syncwatch tests."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from syncwatch.client.auth import AuthSignal
from syncwatch.client.polling import SyncStatusStore, SyncTrigger, reset_store
from syncwatch.client.polling.types import Notification
from syncwatch.core.config import PollingConfig
from fakes import FakeClient, ManualScheduler, RecordingDataStore


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def auth() -> AuthSignal:
    return AuthSignal(authenticated=True)


@pytest.fixture
def client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def config() -> PollingConfig:
    return PollingConfig()


@pytest.fixture
def store(
    client: FakeClient,
    scheduler: ManualScheduler,
    auth: AuthSignal,
    config: PollingConfig,
) -> Iterator[SyncStatusStore]:
    store = SyncStatusStore(client, scheduler, auth, config)  # type: ignore[arg-type]
    yield store
    store.close()


@pytest.fixture
def notifications() -> list[Notification]:
    return []


@pytest.fixture
def trigger(
    client: FakeClient,
    store: SyncStatusStore,
    auth: AuthSignal,
    scheduler: ManualScheduler,
    config: PollingConfig,
    notifications: list[Notification],
) -> Iterator[SyncTrigger]:
    trigger = SyncTrigger(
        client,  # type: ignore[arg-type]
        store,
        auth,
        scheduler,
        config,
        notify=notifications.append,
    )
    yield trigger
    trigger.close()


@pytest.fixture
def data_store() -> RecordingDataStore:
    return RecordingDataStore()


@pytest.fixture(autouse=True)
def _reset_process_store() -> Iterator[None]:
    yield
    reset_store()
