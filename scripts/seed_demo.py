"""Load demo courses, lessons, enrollments and progress into Cassandra.

Creates the keyspace and tables when missing, then inserts demo data.
A fixed seed makes repeated runs produce the same ids.

Usage:
    python -m scripts.seed_demo --seed 42 --students 8
"""

import argparse
import asyncio
import random

from src.config.settings import get_settings
from src.core.context import RequestContext
from src.core.database import init_async_cassandra, shutdown_async_cassandra
from src.core.logging import configure_structlog, get_logger
from src.courses.repository import CourseRepository, LessonRepository
from src.progress.repository import EnrollmentRepository, LessonProgressRepository
from src.seed.demo import DemoDataLoader


logger = get_logger(__name__)


async def run_seed(seed: int, instructors: int, students: int) -> None:
    """Run the demo loader against the configured cluster."""
    settings = get_settings()
    keyspace = settings.cassandra_keyspace

    logger.info(
        "seed_starting",
        keyspace=keyspace,
        hosts=settings.cassandra_hosts,
        seed=seed,
    )

    session = await init_async_cassandra(settings)
    try:
        enrollments = EnrollmentRepository(session=session, keyspace=keyspace)
        loader = DemoDataLoader(
            courses=CourseRepository(session=session, keyspace=keyspace),
            lessons=LessonRepository(session=session, keyspace=keyspace),
            enrollments=enrollments,
            progress=LessonProgressRepository(
                session=session, keyspace=keyspace, enrollments=enrollments
            ),
            rng=random.Random(seed),
        )
        summary = await loader.load(instructors=instructors, students=students)
        logger.info(
            "seed_completed",
            instructor_ids=[str(i) for i in summary.instructor_ids],
            student_ids=[str(s) for s in summary.student_ids],
        )
    finally:
        await shutdown_async_cassandra()


def main() -> None:
    parser = argparse.ArgumentParser(description="Load CourseFlow demo data")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument("--instructors", type=int, default=2)
    parser.add_argument("--students", type=int, default=8)
    args = parser.parse_args()

    configure_structlog(get_settings())
    with RequestContext(trace_id=f"seed-{args.seed}"):
        asyncio.run(run_seed(args.seed, args.instructors, args.students))


if __name__ == "__main__":
    main()
