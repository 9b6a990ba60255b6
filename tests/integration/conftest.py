from __future__ import annotations

import os

import pytest


def pytest_collection_modifyitems(items: list, config) -> None:  # noqa: ANN001
    """Auto-mark every test in the integration directory.

    Without ``POSTGRES_HOST`` there is no database to talk to, so the
    tests are skipped.
    """
    marker = pytest.mark.integration
    skip = pytest.mark.skip(reason="POSTGRES_HOST is not set")
    for item in items:
        if "integration" not in item.nodeid:
            continue
        item.add_marker(marker)
        if not os.getenv("POSTGRES_HOST"):
            item.add_marker(skip)


class Settings:
    def __init__(self) -> None:
        self.host = os.getenv("POSTGRES_HOST", "localhost")
        self.port = int(os.getenv("POSTGRES_PORT", "5432"))
        self.database = os.getenv("POSTGRES_DB", "facility_history_test")
        self.user = os.getenv("POSTGRES_USER", "postgres")
        self.password = os.getenv("POSTGRES_PASSWORD", "postgres")


@pytest.fixture(scope="session")
def pg_settings() -> Settings:
    return Settings()
