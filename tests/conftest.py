from __future__ import annotations

import pytest

from jobtracker.config import get_settings

from tests.factories import CountingStorage


@pytest.fixture
def storage(tmp_path) -> CountingStorage:
    return CountingStorage(local_dir=str(tmp_path / "local"))


@pytest.fixture
def cloud_storage(tmp_path) -> CountingStorage:
    cloud = tmp_path / "cloud"
    cloud.mkdir()
    return CountingStorage(local_dir=str(tmp_path / "local"), cloud_dir=str(cloud))


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch):
    for name in ("JOBTRACKER_CLOUD_DIR", "JOBTRACKER_DATA_DIR", "JOBTRACKER_RAPIDAPI_KEY"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
