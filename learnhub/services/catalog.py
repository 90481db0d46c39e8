import logging
from typing import List, Optional, Tuple

from fastapi import HTTPException, status

from learnhub.schemas.course import (
    Course, CourseDetail, CourseCreate, CourseUpdate, CourseFilters,
    Lesson, LessonCreate, LessonUpdate,
)
from learnhub.schemas.response import Notice
from learnhub.schemas.review import Review, ReviewCreate
from learnhub.schemas.user import SessionContext
from learnhub.storage.base import StorageError
from learnhub.storage.negotiation import StorageSelector

logger = logging.getLogger(__name__)


def _require_admin(session: SessionContext) -> None:
    if not session.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin privileges required")


def _unavailable(exc: StorageError) -> HTTPException:
    logger.error(f"Catalog storage error: {exc}")
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Course data is unavailable")


class CatalogService:
    def list_courses(self, storage: StorageSelector, filters: CourseFilters) -> Tuple[List[Course], Optional[Notice]]:
        try:
            return storage.catalog.list_courses(filters), None
        except StorageError as exc:
            logger.error(f"Could not list courses: {exc}")
            return [], Notice.failure("No data", "Failed to load courses. Please try again later.")

    def get_course(self, storage: StorageSelector, course_id: str) -> CourseDetail:
        try:
            course = storage.catalog.get_course(course_id)
        except StorageError as exc:
            raise _unavailable(exc)
        if not course:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Course not found")
        return course

    def get_lesson(self, storage: StorageSelector, lesson_id: str) -> Lesson:
        try:
            lesson = storage.catalog.get_lesson(lesson_id)
        except StorageError as exc:
            raise _unavailable(exc)
        if not lesson:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Lesson not found")
        return lesson

    def list_categories(self, storage: StorageSelector) -> List[str]:
        try:
            return storage.catalog.list_categories()
        except StorageError as exc:
            logger.error(f"Could not list categories: {exc}")
            return []

    def list_instructors(self, storage: StorageSelector) -> List[str]:
        try:
            return storage.catalog.list_instructors()
        except StorageError as exc:
            logger.error(f"Could not list instructors: {exc}")
            return []

    def create_course(self, storage: StorageSelector, session: SessionContext, course_in: CourseCreate) -> CourseDetail:
        _require_admin(session)
        try:
            course = storage.catalog.create_course(course_in)
        except StorageError as exc:
            raise _unavailable(exc)
        logger.info(f"Course {course.id} created by {session.current_user.email}")
        return course

    def update_course(
        self, storage: StorageSelector, session: SessionContext, course_id: str, course_in: CourseUpdate
    ) -> CourseDetail:
        _require_admin(session)
        try:
            course = storage.catalog.update_course(course_id, course_in)
        except StorageError as exc:
            raise _unavailable(exc)
        if not course:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Course not found")
        return course

    def delete_course(self, storage: StorageSelector, session: SessionContext, course_id: str) -> Course:
        _require_admin(session)
        try:
            course = storage.catalog.delete_course(course_id)
        except StorageError as exc:
            raise _unavailable(exc)
        if not course:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Course not found")
        logger.info(f"Course {course_id} deleted by {session.current_user.email}")
        return course

    def create_lesson(
        self, storage: StorageSelector, session: SessionContext, course_id: str, lesson_in: LessonCreate
    ) -> Lesson:
        _require_admin(session)
        try:
            lesson = storage.catalog.create_lesson(course_id, lesson_in)
        except StorageError as exc:
            raise _unavailable(exc)
        if not lesson:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Course not found")
        return lesson

    def update_lesson(
        self, storage: StorageSelector, session: SessionContext, lesson_id: str, lesson_in: LessonUpdate
    ) -> Lesson:
        _require_admin(session)
        try:
            lesson = storage.catalog.update_lesson(lesson_id, lesson_in)
        except StorageError as exc:
            raise _unavailable(exc)
        if not lesson:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Lesson not found")
        return lesson

    def delete_lesson(self, storage: StorageSelector, session: SessionContext, lesson_id: str) -> Lesson:
        _require_admin(session)
        try:
            lesson = storage.catalog.delete_lesson(lesson_id)
        except StorageError as exc:
            raise _unavailable(exc)
        if not lesson:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Lesson not found")
        return lesson

    def submit_review(
        self, storage: StorageSelector, session: SessionContext, course_id: str, review_in: ReviewCreate
    ) -> Tuple[Review, bool]:
        """Creates the user's review of a course, or replaces the one they already left."""
        if not session.is_authenticated:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
        self.get_course(storage, course_id)

        user_id = session.current_user.id
        try:
            enrollment = storage.enrollments.get_enrollment(user_id, course_id)
            if not enrollment:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="You must be enrolled in this course to review it"
                )
            return storage.catalog.upsert_review(course_id, user_id, review_in)
        except StorageError as exc:
            raise _unavailable(exc)

    def list_reviews(self, storage: StorageSelector, course_id: str) -> List[Review]:
        try:
            return storage.catalog.list_reviews(course_id)
        except StorageError as exc:
            logger.error(f"Could not list reviews of {course_id}: {exc}")
            return []


catalog_service = CatalogService()
