import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Iterator, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError, OperationalError, ProgrammingError, SQLAlchemyError
from sqlalchemy.orm import Session

from learnhub.core.constants import StorageBackendEnum
from learnhub.crud.completed_lesson import completed_lesson as crud_completed_lesson
from learnhub.crud.course import course as crud_course
from learnhub.crud.enrollment import enrollment as crud_enrollment
from learnhub.crud.lesson import lesson as crud_lesson
from learnhub.crud.review import review as crud_review
from learnhub.models.course import Course as CourseModel
from learnhub.models.enrollment import Enrollment as EnrollmentModel
from learnhub.schemas.course import (
    Course, CourseDetail, CourseCreate, CourseUpdate, CourseFilters,
    Lesson, LessonCreate, LessonUpdate,
)
from learnhub.schemas.enrollment import Enrollment
from learnhub.schemas.review import Review, ReviewCreate
from learnhub.storage.base import (
    CatalogStorage, EnrollmentStorage,
    StorageError, StorageUnavailableError, DuplicateRecordError,
)
from learnhub.utils.progress import reconcile_progress

logger = logging.getLogger(__name__)


@contextmanager
def session_scope(session_factory: Callable[[], Session]) -> Iterator[Session]:
    """Transactional scope that turns SQLAlchemy failures into storage errors."""
    db = session_factory()
    try:
        yield db
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise DuplicateRecordError(str(exc.orig)) from exc
    except (OperationalError, ProgrammingError) as exc:
        db.rollback()
        logger.error(f"Relational store unavailable: {exc}")
        raise StorageUnavailableError(str(exc.orig)) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(f"Relational store error: {exc}")
        raise StorageError(str(exc)) from exc
    finally:
        db.close()


def _course_summary(course: CourseModel) -> Course:
    data = Course.model_validate(course)
    data.lesson_count = len(course.lessons)
    return data


def _course_detail(course: CourseModel) -> CourseDetail:
    data = CourseDetail.model_validate(course)
    data.lesson_count = len(data.lessons)
    data.lessons.sort(key=lambda lesson: (lesson.order_index, lesson.created_at))
    return data


class RelationalCatalogStorage(CatalogStorage):
    kind = StorageBackendEnum.RELATIONAL

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def list_courses(self, filters: CourseFilters) -> List[Course]:
        with session_scope(self.session_factory) as db:
            return [_course_summary(c) for c in crud_course.get_filtered(db, filters)]

    def get_course(self, course_id: str) -> Optional[CourseDetail]:
        with session_scope(self.session_factory) as db:
            course = crud_course.get(db, id=course_id)
            return _course_detail(course) if course else None

    def list_categories(self) -> List[str]:
        with session_scope(self.session_factory) as db:
            return crud_course.get_categories(db)

    def list_instructors(self) -> List[str]:
        with session_scope(self.session_factory) as db:
            return crud_course.get_instructors(db)

    def create_course(self, course_in: CourseCreate) -> CourseDetail:
        with session_scope(self.session_factory) as db:
            course = crud_course.create(db, obj_in=course_in, commit=False)
            return _course_detail(course)

    def update_course(self, course_id: str, course_in: CourseUpdate) -> Optional[CourseDetail]:
        with session_scope(self.session_factory) as db:
            course = crud_course.get(db, id=course_id)
            if not course:
                return None
            course = crud_course.update(db, db_obj=course, obj_in=course_in, commit=False)
            return _course_detail(course)

    def delete_course(self, course_id: str) -> Optional[Course]:
        with session_scope(self.session_factory) as db:
            course = crud_course.get(db, id=course_id)
            if not course:
                return None
            summary = _course_summary(course)
            crud_course.delete(db, id=course_id, commit=False)
            return summary

    def get_lesson(self, lesson_id: str) -> Optional[Lesson]:
        with session_scope(self.session_factory) as db:
            lesson = crud_lesson.get(db, id=lesson_id)
            return Lesson.model_validate(lesson) if lesson else None

    def create_lesson(self, course_id: str, lesson_in: LessonCreate) -> Optional[Lesson]:
        with session_scope(self.session_factory) as db:
            if not crud_course.get(db, id=course_id):
                return None
            data = lesson_in.model_dump()
            data["course_id"] = course_id
            if "order_index" not in lesson_in.model_fields_set:
                data["order_index"] = crud_lesson.next_order_index(db, course_id=course_id)
            lesson = crud_lesson.create(db, obj_in=data, commit=False)
            return Lesson.model_validate(lesson)

    def update_lesson(self, lesson_id: str, lesson_in: LessonUpdate) -> Optional[Lesson]:
        with session_scope(self.session_factory) as db:
            lesson = crud_lesson.get(db, id=lesson_id)
            if not lesson:
                return None
            lesson = crud_lesson.update(db, db_obj=lesson, obj_in=lesson_in, commit=False)
            return Lesson.model_validate(lesson)

    def delete_lesson(self, lesson_id: str) -> Optional[Lesson]:
        with session_scope(self.session_factory) as db:
            lesson = crud_lesson.get(db, id=lesson_id)
            if not lesson:
                return None
            data = Lesson.model_validate(lesson)
            crud_lesson.delete(db, id=lesson_id, commit=False)
            return data

    def upsert_review(self, course_id: str, user_id: str, review_in: ReviewCreate) -> Tuple[Review, bool]:
        with session_scope(self.session_factory) as db:
            existing = crud_review.get_by_user_and_course(db, user_id=user_id, course_id=course_id)
            if existing:
                review = crud_review.update(db, db_obj=existing, obj_in=review_in, commit=False)
                return Review.model_validate(review), False
            data = review_in.model_dump()
            data.update(course_id=course_id, user_id=user_id)
            review = crud_review.create(db, obj_in=data, commit=False)
            return Review.model_validate(review), True

    def list_reviews(self, course_id: str) -> List[Review]:
        with session_scope(self.session_factory) as db:
            return [Review.model_validate(r) for r in crud_review.get_by_course(db, course_id=course_id)]


class RelationalEnrollmentStorage(EnrollmentStorage):
    kind = StorageBackendEnum.RELATIONAL

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def _to_schema(self, db: Session, enrollment: EnrollmentModel) -> Enrollment:
        data = Enrollment.model_validate(enrollment)
        data.lesson_count = crud_lesson.count_by_course(db, course_id=enrollment.course_id)
        markers = crud_completed_lesson.get_by_user_and_course(
            db, user_id=enrollment.user_id, course_id=enrollment.course_id
        )
        data.completed_lessons_count = len(markers)
        return reconcile_progress(data, markers[-1].completed_at if markers else None)

    def get_enrollment(self, user_id: str, course_id: str) -> Optional[Enrollment]:
        with session_scope(self.session_factory) as db:
            enrollment = crud_enrollment.get_by_user_and_course(db, user_id=user_id, course_id=course_id)
            return self._to_schema(db, enrollment) if enrollment else None

    def get_enrollment_by_id(self, enrollment_id: str) -> Optional[Enrollment]:
        with session_scope(self.session_factory) as db:
            enrollment = crud_enrollment.get(db, id=enrollment_id)
            return self._to_schema(db, enrollment) if enrollment else None

    def list_enrollments(self, user_id: str) -> List[Enrollment]:
        with session_scope(self.session_factory) as db:
            return [self._to_schema(db, e) for e in crud_enrollment.get_by_user(db, user_id=user_id)]

    def create_enrollment(self, enrollment: Enrollment) -> Enrollment:
        with session_scope(self.session_factory) as db:
            data = enrollment.model_dump(exclude={"lesson_count", "completed_lessons_count"})
            created = crud_enrollment.create(db, obj_in=data, commit=False)
            return self._to_schema(db, created)

    def save_enrollment(self, enrollment: Enrollment) -> Optional[Enrollment]:
        with session_scope(self.session_factory) as db:
            existing = crud_enrollment.get(db, id=enrollment.id)
            if not existing:
                return None
            updated = crud_enrollment.update(
                db,
                db_obj=existing,
                obj_in={
                    "status": enrollment.status,
                    "progress": enrollment.progress,
                    "completed_at": enrollment.completed_at,
                },
                commit=False,
            )
            return self._to_schema(db, updated)

    def delete_enrollment(self, enrollment_id: str) -> Optional[Enrollment]:
        with session_scope(self.session_factory) as db:
            existing = crud_enrollment.get(db, id=enrollment_id)
            if not existing:
                return None
            data = self._to_schema(db, existing)
            crud_enrollment.delete(db, id=enrollment_id, commit=False)
            return data

    def course_lesson_ids(self, course_id: str) -> Optional[List[str]]:
        with session_scope(self.session_factory) as db:
            if not db.get(CourseModel, course_id):
                return None
            return crud_lesson.get_ids_by_course(db, course_id=course_id)

    def completed_lesson_ids(self, user_id: str, course_id: str) -> List[str]:
        with session_scope(self.session_factory) as db:
            markers = crud_completed_lesson.get_by_user_and_course(db, user_id=user_id, course_id=course_id)
            return [m.lesson_id for m in markers]

    def add_completed_lesson(self, user_id: str, course_id: str, lesson_id: str, completed_at: datetime) -> bool:
        with session_scope(self.session_factory) as db:
            if crud_completed_lesson.get_by_user_and_lesson(db, user_id=user_id, lesson_id=lesson_id):
                return False
            crud_completed_lesson.create(
                db,
                obj_in={"user_id": user_id, "lesson_id": lesson_id, "completed_at": completed_at},
                commit=False,
            )
            return True

    def remove_completed_lesson(self, user_id: str, course_id: str, lesson_id: str) -> bool:
        with session_scope(self.session_factory) as db:
            marker = crud_completed_lesson.get_by_user_and_lesson(db, user_id=user_id, lesson_id=lesson_id)
            if not marker:
                return False
            crud_completed_lesson.delete(db, id=marker.id, commit=False)
            return True

    def clear_completed_lessons(self, user_id: str, course_id: str) -> int:
        with session_scope(self.session_factory) as db:
            return crud_completed_lesson.delete_by_user_and_course(db, user_id=user_id, course_id=course_id)

    def completion_times(self, user_id: str) -> List[datetime]:
        with session_scope(self.session_factory) as db:
            return crud_completed_lesson.get_completion_times(db, user_id=user_id)
