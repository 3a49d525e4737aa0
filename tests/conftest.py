import pytest
from fastapi.testclient import TestClient

from apps.storefront.database import ActivityStore
from apps.storefront.services.activity_log import ActivityRepository


@pytest.fixture
def activity_store(tmp_path):
    store = ActivityStore(tmp_path / "data")
    store.initialize()
    try:
        yield store
    finally:
        store.shutdown()


@pytest.fixture
def repo(activity_store):
    return ActivityRepository(activity_store)


@pytest.fixture
def client(repo):
    """App client recording into a temporary store (lifespan not started)."""
    from apps.storefront.main import app

    prev_store = app.state.activity_store
    prev_repo = app.state.activity_repository
    app.state.activity_store = repo.store
    app.state.activity_repository = repo
    try:
        yield TestClient(app)
    finally:
        app.state.activity_store = prev_store
        app.state.activity_repository = prev_repo
        app.dependency_overrides.clear()
