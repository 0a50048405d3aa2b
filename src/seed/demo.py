"""Demo data for local development.

Creates public courses with video and PDF lessons, enrolls students and
records partial progress, all through the regular repositories. Users live in
an external identity service, so instructors and students are plain UUIDs.
"""

import random
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from src.courses.models import Course, CourseStatus, Lesson, LessonType
from src.progress.models import Enrollment, LearningStatus, LessonProgress
from src.progress.policy import recompute_enrollment


if TYPE_CHECKING:
    from src.courses.repository import CourseRepository, LessonRepository
    from src.progress.repository import EnrollmentRepository, LessonProgressRepository

logger = structlog.get_logger(__name__)


DEMO_COURSES: dict[str, list[str]] = {
    "Python para Analise de Dados": [
        "Apresentacao do curso",
        "Preparando o ambiente",
        "Estruturas de dados",
        "Manipulando tabelas com pandas",
        "Graficos e visualizacao",
        "Projeto final",
    ],
    "Marketing Digital na Pratica": [
        "Visao geral do funil",
        "Publico e personas",
        "Primeira campanha",
        "Metricas e relatorios",
        "Testes A/B",
    ],
    "Fundamentos de Financas Pessoais": [
        "Orcamento mensal",
        "Reserva de emergencia",
        "Renda fixa",
        "Renda variavel",
    ],
}


@dataclass
class DemoSummary:
    """What a demo load created."""

    instructor_ids: list[UUID] = field(default_factory=list)
    student_ids: list[UUID] = field(default_factory=list)
    course_ids: list[UUID] = field(default_factory=list)
    lessons: int = 0
    enrollments: int = 0
    progress_records: int = 0


class DemoDataLoader:
    """Builds reproducible demo data from an injected random generator."""

    def __init__(
        self,
        courses: "CourseRepository",
        lessons: "LessonRepository",
        enrollments: "EnrollmentRepository",
        progress: "LessonProgressRepository",
        rng: random.Random,
    ):
        self.courses = courses
        self.lessons = lessons
        self.enrollments = enrollments
        self.progress = progress
        self.rng = rng

    def _uuid(self) -> UUID:
        return UUID(int=self.rng.getrandbits(128), version=4)

    def _build_lessons(self, course_id: UUID, titles: list[str], now: datetime) -> list[Lesson]:
        lessons = []
        for position, title in enumerate(titles, start=1):
            if self.rng.random() < 0.7:
                lesson = Lesson(
                    course_id=course_id,
                    id=self._uuid(),
                    title=title,
                    lesson_type=LessonType.VIDEO.value,
                    content_url=f"https://www.youtube.com/watch?v=demo{position:07d}",
                    position=position,
                    total_duration_seconds=self.rng.randint(180, 1800),
                    created_at=now,
                    updated_at=now,
                )
            else:
                lesson = Lesson(
                    course_id=course_id,
                    id=self._uuid(),
                    title=title,
                    lesson_type=LessonType.PDF.value,
                    position=position,
                    total_pages=self.rng.randint(5, 40),
                    created_at=now,
                    updated_at=now,
                )
            lessons.append(lesson)
        return lessons

    def _build_progress(
        self, student_id: UUID, lessons: list[Lesson], now: datetime
    ) -> dict[UUID, LessonProgress]:
        """Completed prefix of the lessons plus a partial one after it."""
        done = int(len(lessons) * self.rng.random())
        records: dict[UUID, LessonProgress] = {}
        for lesson in lessons[:done]:
            records[lesson.id] = LessonProgress(
                user_id=student_id,
                course_id=lesson.course_id,
                lesson_id=lesson.id,
                is_completed=True,
                last_update=now,
            )

        if done < len(lessons):
            lesson = lessons[done]
            partial = LessonProgress(
                user_id=student_id,
                course_id=lesson.course_id,
                lesson_id=lesson.id,
                last_update=now,
            )
            if lesson.is_video:
                partial.current_time_seconds = self.rng.randint(
                    0, lesson.total_duration_seconds // 2
                )
            else:
                partial.current_page = self.rng.randint(1, lesson.total_pages // 2)
            records[lesson.id] = partial
        return records

    async def load(self, instructors: int = 2, students: int = 8) -> DemoSummary:
        """Create the demo catalog, enrollments and progress."""
        now = datetime.now(UTC)
        summary = DemoSummary(
            instructor_ids=[self._uuid() for _ in range(instructors)],
            student_ids=[self._uuid() for _ in range(students)],
        )

        catalog: list[tuple[Course, list[Lesson]]] = []
        for title, lesson_titles in DEMO_COURSES.items():
            course = Course(
                id=self._uuid(),
                title=title,
                description=f"Curso de demonstracao: {title}",
                status=CourseStatus.PUBLIC.value,
                creator_id=self.rng.choice(summary.instructor_ids),
                created_at=now,
                updated_at=now,
            )
            await self.courses.insert(course)
            lessons = self._build_lessons(course.id, lesson_titles, now)
            for lesson in lessons:
                await self.lessons.save(lesson)

            catalog.append((course, lessons))
            summary.course_ids.append(course.id)
            summary.lessons += len(lessons)

        for student_id in summary.student_ids:
            picked = self.rng.sample(catalog, self.rng.randint(1, len(catalog)))
            for course, lessons in picked:
                enrolled_at = now - timedelta(days=self.rng.randint(1, 90))
                enrollment = Enrollment(
                    course_id=course.id,
                    user_id=student_id,
                    learning_status=LearningStatus.NOT_STARTED.value,
                    lessons_total=len(lessons),
                    enrolled_at=enrolled_at,
                    updated_at=enrolled_at,
                )
                if not await self.enrollments.insert_if_not_exists(enrollment):
                    continue
                summary.enrollments += 1

                records = self._build_progress(student_id, lessons, now)
                if not records:
                    continue
                recompute_enrollment(enrollment, lessons, records, now)
                for record in records.values():
                    await self.progress.save_with_enrollment(record, enrollment)
                summary.progress_records += len(records)

        logger.info(
            "demo_data_loaded",
            courses=len(summary.course_ids),
            lessons=summary.lessons,
            enrollments=summary.enrollments,
            progress_records=summary.progress_records,
        )
        return summary
