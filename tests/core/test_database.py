"""Tests for keyspace and table creation."""

from unittest.mock import AsyncMock, Mock

import pytest
from cassandra.cluster import Session

from src.config.settings import Settings
from src.core.database import init_async_schema, keyspace_replication
from src.core.database.async_cassandra import SCHEMA


class TestKeyspaceReplication:
    """Tests for keyspace_replication."""

    def test_single_replica_outside_production(self) -> None:
        """Development and tests use SimpleStrategy with one replica."""
        settings = Settings(environment="development")
        assert "SimpleStrategy" in keyspace_replication(settings)
        assert "'replication_factor': 1" in keyspace_replication(settings)

    def test_network_topology_in_production(self) -> None:
        """Production replicates per datacenter."""
        settings = Settings(
            environment="production",
            cassandra_datacenter="sa-east",
            cassandra_replication_factor=3,
        )
        assert keyspace_replication(settings) == (
            "{'class': 'NetworkTopologyStrategy', 'sa-east': 3}"
        )


class TestInitSchema:
    """Tests for init_async_schema."""

    @pytest.mark.asyncio
    async def test_creates_keyspace_then_tables(self) -> None:
        """Keyspace first, then every table template with the keyspace filled in."""
        session = Mock(spec=Session)
        session.aexecute = AsyncMock()
        settings = Settings(environment="testing", cassandra_keyspace="cf_test")

        await init_async_schema(session, settings)

        statements = [c.args[0] for c in session.aexecute.await_args_list]
        assert statements[0].startswith("CREATE KEYSPACE IF NOT EXISTS cf_test")
        session.set_keyspace.assert_called_once_with("cf_test")
        assert len(statements) == 1 + sum(len(s) for _, s in SCHEMA)
        assert all("{keyspace}" not in cql for cql in statements)
        assert any("cf_test.lesson_progress" in cql for cql in statements)
