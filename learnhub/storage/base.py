from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Tuple

from learnhub.core.constants import StorageBackendEnum
from learnhub.schemas.course import (
    Course, CourseDetail, CourseCreate, CourseUpdate, CourseFilters,
    Lesson, LessonCreate, LessonUpdate,
)
from learnhub.schemas.enrollment import Enrollment
from learnhub.schemas.review import Review, ReviewCreate


class StorageError(Exception):
    """A storage backend failed to serve a request."""


class StorageUnavailableError(StorageError):
    """The backend cannot be used at all: missing tables or unreachable database."""


class DuplicateRecordError(StorageError):
    """A uniqueness rule rejected a write."""


class CatalogStorage(ABC):
    kind: StorageBackendEnum

    @abstractmethod
    def list_courses(self, filters: CourseFilters) -> List[Course]:
        pass

    @abstractmethod
    def get_course(self, course_id: str) -> Optional[CourseDetail]:
        pass

    @abstractmethod
    def list_categories(self) -> List[str]:
        pass

    @abstractmethod
    def list_instructors(self) -> List[str]:
        pass

    @abstractmethod
    def create_course(self, course_in: CourseCreate) -> CourseDetail:
        pass

    @abstractmethod
    def update_course(self, course_id: str, course_in: CourseUpdate) -> Optional[CourseDetail]:
        pass

    @abstractmethod
    def delete_course(self, course_id: str) -> Optional[Course]:
        """Deletes the course with its lessons, reviews and enrollments."""

    @abstractmethod
    def get_lesson(self, lesson_id: str) -> Optional[Lesson]:
        pass

    @abstractmethod
    def create_lesson(self, course_id: str, lesson_in: LessonCreate) -> Optional[Lesson]:
        pass

    @abstractmethod
    def update_lesson(self, lesson_id: str, lesson_in: LessonUpdate) -> Optional[Lesson]:
        pass

    @abstractmethod
    def delete_lesson(self, lesson_id: str) -> Optional[Lesson]:
        pass

    @abstractmethod
    def upsert_review(self, course_id: str, user_id: str, review_in: ReviewCreate) -> Tuple[Review, bool]:
        """Returns the stored review and whether it was newly created."""

    @abstractmethod
    def list_reviews(self, course_id: str) -> List[Review]:
        pass


class EnrollmentStorage(ABC):
    """
    Enrollment and completed-lesson persistence.

    Returned enrollments carry freshly derived `lesson_count`,
    `completed_lessons_count` and `progress`; only markers that belong to a
    current lesson of the course are counted.
    """
    kind: StorageBackendEnum

    @abstractmethod
    def get_enrollment(self, user_id: str, course_id: str) -> Optional[Enrollment]:
        pass

    @abstractmethod
    def get_enrollment_by_id(self, enrollment_id: str) -> Optional[Enrollment]:
        pass

    @abstractmethod
    def list_enrollments(self, user_id: str) -> List[Enrollment]:
        """Newest `started_at` first."""

    @abstractmethod
    def create_enrollment(self, enrollment: Enrollment) -> Enrollment:
        """Raises DuplicateRecordError if the (user, course) pair already exists."""

    @abstractmethod
    def save_enrollment(self, enrollment: Enrollment) -> Optional[Enrollment]:
        """Persists status, progress and completed_at. None if the record is gone."""

    @abstractmethod
    def delete_enrollment(self, enrollment_id: str) -> Optional[Enrollment]:
        pass

    @abstractmethod
    def course_lesson_ids(self, course_id: str) -> Optional[List[str]]:
        """Lesson ids of a course, or None when the course does not exist."""

    @abstractmethod
    def completed_lesson_ids(self, user_id: str, course_id: str) -> List[str]:
        pass

    @abstractmethod
    def add_completed_lesson(self, user_id: str, course_id: str, lesson_id: str, completed_at: datetime) -> bool:
        """Returns False when the marker already existed."""

    @abstractmethod
    def remove_completed_lesson(self, user_id: str, course_id: str, lesson_id: str) -> bool:
        """Returns False when there was no marker."""

    @abstractmethod
    def clear_completed_lessons(self, user_id: str, course_id: str) -> int:
        pass

    @abstractmethod
    def completion_times(self, user_id: str) -> List[datetime]:
        """When each of the user's completed lessons was marked, across all courses."""
