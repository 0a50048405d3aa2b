"""Cassandra session and schema for CourseFlow.

One cluster and one session per process, created at startup by the FastAPI
lifespan (or by ``scripts/seed_demo.py``). Queries go through
``session.aexecute()`` from cassandra-asyncio-driver.

Tables are declared as CQL templates next to the entities that own them and
created here in dependency order.
"""

import structlog
from cassandra.auth import PlainTextAuthProvider
from cassandra.policies import DCAwareRoundRobinPolicy, TokenAwarePolicy
from cassandra_asyncio.cluster import Cluster

from src.config.settings import Settings, get_settings
from src.courses.models import COURSES_TABLES_CQL
from src.progress.models import PROGRESS_TABLES_CQL


logger = structlog.get_logger(__name__)

# (module, CQL templates) in creation order
SCHEMA: tuple[tuple[str, list[str]], ...] = (
    ("courses", COURSES_TABLES_CQL),
    ("progress", PROGRESS_TABLES_CQL),
)


class AsyncCassandraConnection:
    """Process-wide cluster and session holder."""

    _cluster: Cluster | None = None
    _session = None

    @classmethod
    def connect(cls, settings: Settings | None = None):
        """Open the session, reusing an existing one.

        Raises:
            ConnectionError: If no contact point accepts the connection
        """
        if cls._session is not None:
            return cls._session

        settings = settings or get_settings()

        auth_provider = None
        if settings.cassandra_username and settings.cassandra_password:
            auth_provider = PlainTextAuthProvider(
                username=settings.cassandra_username,
                password=settings.cassandra_password,
            )

        cls._cluster = Cluster(
            contact_points=settings.cassandra_hosts,
            port=settings.cassandra_port,
            auth_provider=auth_provider,
            protocol_version=settings.cassandra_protocol_version,
            load_balancing_policy=TokenAwarePolicy(
                DCAwareRoundRobinPolicy(local_dc=settings.cassandra_datacenter)
            ),
            connect_timeout=settings.cassandra_connect_timeout,
        )

        try:
            session = cls._cluster.connect()
        except Exception as e:
            logger.error(
                "cassandra_connection_failed",
                hosts=settings.cassandra_hosts,
                error=str(e),
            )
            cls._cluster.shutdown()
            cls._cluster = None
            raise ConnectionError(f"Failed to connect to Cassandra: {e}") from e

        session.default_timeout = settings.cassandra_request_timeout
        cls._session = session
        logger.info(
            "cassandra_connected",
            hosts=settings.cassandra_hosts,
            port=settings.cassandra_port,
            request_timeout=settings.cassandra_request_timeout,
        )
        return cls._session

    @classmethod
    def disconnect(cls) -> None:
        """Close session and cluster if open."""
        if cls._session is not None:
            cls._session.shutdown()
            cls._session = None
        if cls._cluster is not None:
            cls._cluster.shutdown()
            cls._cluster = None
            logger.info("cassandra_disconnected")

    @classmethod
    def is_connected(cls) -> bool:
        return cls._session is not None and not cls._session.is_shutdown


def keyspace_replication(settings: Settings) -> str:
    """Replication map for the keyspace: one replica outside production."""
    if settings.is_production:
        return (
            "{'class': 'NetworkTopologyStrategy', "
            f"'{settings.cassandra_datacenter}': {settings.cassandra_replication_factor}}}"
        )
    return "{'class': 'SimpleStrategy', 'replication_factor': 1}"


async def init_async_schema(session, settings: Settings) -> None:
    """Create the keyspace and every module's tables if missing."""
    keyspace = settings.cassandra_keyspace

    await session.aexecute(
        f"CREATE KEYSPACE IF NOT EXISTS {keyspace} "
        f"WITH replication = {keyspace_replication(settings)} "
        "AND durable_writes = true"
    )
    session.set_keyspace(keyspace)

    for module, statements in SCHEMA:
        for template in statements:
            await session.aexecute(template.format(keyspace=keyspace))
        logger.info("tables_ready", keyspace=keyspace, module=module)


async def init_async_cassandra(settings: Settings | None = None):
    """Connect and make sure the schema exists.

    Returns:
        Session with aexecute() support
    """
    settings = settings or get_settings()
    session = AsyncCassandraConnection.connect(settings)
    await init_async_schema(session, settings)
    logger.info("cassandra_initialized", keyspace=settings.cassandra_keyspace)
    return session


async def shutdown_async_cassandra() -> None:
    """Close the process-wide session."""
    AsyncCassandraConnection.disconnect()
