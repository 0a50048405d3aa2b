"""Cassandra access for CourseFlow: session lifecycle and schema creation."""

from src.core.database.async_cassandra import (
    AsyncCassandraConnection,
    init_async_cassandra,
    init_async_schema,
    keyspace_replication,
    shutdown_async_cassandra,
)


__all__ = [
    "AsyncCassandraConnection",
    "init_async_cassandra",
    "init_async_schema",
    "keyspace_replication",
    "shutdown_async_cassandra",
]
