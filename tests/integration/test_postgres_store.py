from __future__ import annotations

from collections.abc import AsyncGenerator

import pytest

from facility_history.store.postgres import PostgresStore
from facility_history.testing.store_test_kit import StoreTestKit


class TestPostgresStore(StoreTestKit):
    @pytest.fixture()
    async def store(self, pg_settings) -> AsyncGenerator[PostgresStore]:
        pg_store = PostgresStore(
            host=pg_settings.host,
            port=pg_settings.port,
            database=pg_settings.database,
            user=pg_settings.user,
            password=pg_settings.password,
        )
        await pg_store.init()
        await pg_store.reset()
        for document in self.seed_facilities:
            await pg_store.add_facility(document)
        for operator in self.seed_operators:
            await pg_store.add_operator(str(operator["_id"]), operator["email"])

        yield pg_store

        await pg_store.reset()
        await pg_store.close()
