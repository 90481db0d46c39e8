import logging
from collections import Counter
from datetime import date, timedelta
from typing import Dict, List, Optional

from learnhub.core.constants import (
    EnrollmentStatusEnum, EnrollmentErrorEnum, CourseSortEnum,
    RECENT_ENROLLMENTS_LIMIT, RECOMMENDED_COURSES_LIMIT, ACTIVITY_WINDOW_DAYS,
)
from learnhub.core.exceptions import login_redirect
from learnhub.schemas.course import Course, CourseFilters
from learnhub.schemas.enrollment import (
    Enrollment, EnrollmentWithCourse, EnrollmentResult, ProgressSnapshot, DashboardSummary, ActivityDay,
)
from learnhub.schemas.response import Notice
from learnhub.schemas.user import SessionContext
from learnhub.storage.base import StorageError, DuplicateRecordError
from learnhub.storage.negotiation import StorageSelector
from learnhub.utils.dates import utcnow, as_utc
from learnhub.utils.ids import new_id
from learnhub.utils.progress import derive_status

logger = logging.getLogger(__name__)


def _auth_required(path: str) -> EnrollmentResult:
    return EnrollmentResult(
        success=False,
        error=EnrollmentErrorEnum.AUTH_REQUIRED,
        notice=Notice.failure("Authentication required", "Please log in to continue."),
        redirect_to=login_redirect(path),
    )


def current_streak(activity: List[ActivityDay]) -> int:
    """Consecutive active days ending with the last day of the series."""
    streak = 0
    for day in reversed(activity):
        if day.count == 0:
            break
        streak += 1
    return streak


def _failure(error: EnrollmentErrorEnum, title: str, description: str) -> EnrollmentResult:
    return EnrollmentResult(success=False, error=error, notice=Notice.failure(title, description))


class EnrollmentService:
    """
    Enrollment and lesson-progress tracking for the signed-in user.

    Reads never raise: storage failures degrade to "not enrolled" or 0%.
    Mutations report their outcome through an EnrollmentResult and a Notice.
    """

    def is_enrolled(self, storage: StorageSelector, session: SessionContext, course_id: str) -> bool:
        return self.get_enrollment_status(storage, session, course_id) is not None

    def _find_enrollment(self, storage: StorageSelector, user_id: str, course_id: str) -> Optional[Enrollment]:
        try:
            return storage.enrollments.get_enrollment(user_id, course_id)
        except StorageError as exc:
            logger.error(f"Could not read enrollment of {user_id} in course {course_id}: {exc}")
            return None

    def get_enrollment_status(
        self, storage: StorageSelector, session: SessionContext, course_id: str
    ) -> Optional[EnrollmentStatusEnum]:
        if not session.is_authenticated:
            return None
        enrollment = self._find_enrollment(storage, session.current_user.id, course_id)
        return enrollment.status if enrollment else None

    def enroll(self, storage: StorageSelector, session: SessionContext, course_id: str) -> EnrollmentResult:
        if not session.is_authenticated:
            return _auth_required(f"/courses/{course_id}")
        user_id = session.current_user.id

        try:
            existing = storage.enrollments.get_enrollment(user_id, course_id)
            if existing:
                return self._already_enrolled(existing)

            lesson_ids = storage.enrollments.course_lesson_ids(course_id)
            if lesson_ids is None:
                return _failure(
                    EnrollmentErrorEnum.COURSE_NOT_FOUND, "Course not found", "This course does not exist."
                )

            enrollment = storage.enrollments.create_enrollment(Enrollment(
                id=new_id(),
                user_id=user_id,
                course_id=course_id,
                status=EnrollmentStatusEnum.ENROLLED,
                started_at=utcnow(),
                completed_at=None,
                progress=0,
                lesson_count=len(lesson_ids),
            ))
        except DuplicateRecordError as exc:
            existing = self._find_enrollment(storage, user_id, course_id)
            if existing:
                return self._already_enrolled(existing)
            logger.error(f"Enrollment of {user_id} in {course_id} rejected by a constraint: {exc}")
            return _failure(EnrollmentErrorEnum.STORAGE_ERROR, "Enrollment failed", "Please try again later.")
        except StorageError as exc:
            logger.error(f"Enrollment of {user_id} in {course_id} failed: {exc}")
            return _failure(EnrollmentErrorEnum.STORAGE_ERROR, "Enrollment failed", "Please try again later.")

        logger.info(f"User {user_id} enrolled in course {course_id}")
        return EnrollmentResult(
            success=True,
            enrollment=enrollment,
            notice=Notice.success("Enrolled successfully", "You can start learning right away."),
        )

    def _already_enrolled(self, enrollment: Enrollment) -> EnrollmentResult:
        return EnrollmentResult(
            success=True,
            enrollment=enrollment,
            already_enrolled=True,
            notice=Notice.success("Already enrolled", "You are already enrolled in this course."),
        )

    def _sync_progress(self, storage: StorageSelector, user_id: str, course_id: str) -> Optional[Enrollment]:
        enrollment = storage.enrollments.get_enrollment(user_id, course_id)
        if enrollment is None:
            return None
        enrollment.status, enrollment.completed_at = derive_status(
            enrollment.status, enrollment.completed_at, enrollment.progress, utcnow()
        )
        return storage.enrollments.save_enrollment(enrollment)

    def _lesson_in_enrolled_course(
        self, storage: StorageSelector, user_id: str, course_id: str, lesson_id: str
    ) -> bool:
        if storage.enrollments.get_enrollment(user_id, course_id) is None:
            return False
        lesson_ids = storage.enrollments.course_lesson_ids(course_id) or []
        return lesson_id in lesson_ids

    def mark_lesson_complete(
        self, storage: StorageSelector, session: SessionContext, course_id: str, lesson_id: str
    ) -> bool:
        """Records a completed lesson. Marking an already completed lesson changes nothing."""
        if not session.is_authenticated:
            return False
        user_id = session.current_user.id
        try:
            if not self._lesson_in_enrolled_course(storage, user_id, course_id, lesson_id):
                return False
            added = storage.enrollments.add_completed_lesson(user_id, course_id, lesson_id, utcnow())
            if not added:
                return True
            return self._sync_progress(storage, user_id, course_id) is not None
        except StorageError as exc:
            logger.error(f"Could not mark lesson {lesson_id} complete for {user_id}: {exc}")
            return False

    def unmark_lesson_complete(
        self, storage: StorageSelector, session: SessionContext, course_id: str, lesson_id: str
    ) -> bool:
        if not session.is_authenticated:
            return False
        user_id = session.current_user.id
        try:
            if not self._lesson_in_enrolled_course(storage, user_id, course_id, lesson_id):
                return False
            removed = storage.enrollments.remove_completed_lesson(user_id, course_id, lesson_id)
            if not removed:
                return True
            return self._sync_progress(storage, user_id, course_id) is not None
        except StorageError as exc:
            logger.error(f"Could not unmark lesson {lesson_id} for {user_id}: {exc}")
            return False

    def unenroll(self, storage: StorageSelector, session: SessionContext, enrollment_id: str) -> EnrollmentResult:
        if not session.is_authenticated:
            return _auth_required("/my-learning")
        try:
            enrollment = storage.enrollments.get_enrollment_by_id(enrollment_id)
            if enrollment is None:
                return _failure(
                    EnrollmentErrorEnum.ENROLLMENT_NOT_FOUND, "Enrollment not found", "Nothing to unenroll from."
                )
            if enrollment.user_id != session.current_user.id and not session.is_admin:
                return _failure(
                    EnrollmentErrorEnum.FORBIDDEN, "Not allowed", "You can only leave your own courses."
                )
            storage.enrollments.delete_enrollment(enrollment_id)
        except StorageError as exc:
            logger.error(f"Unenroll of {enrollment_id} failed: {exc}")
            return _failure(EnrollmentErrorEnum.STORAGE_ERROR, "Unenroll failed", "Please try again later.")

        try:
            storage.enrollments.clear_completed_lessons(enrollment.user_id, enrollment.course_id)
        except StorageError as exc:
            logger.error(f"Completed lessons of {enrollment.user_id} in {enrollment.course_id} not purged: {exc}")

        logger.info(f"Enrollment {enrollment_id} removed")
        return EnrollmentResult(
            success=True,
            enrollment=enrollment,
            notice=Notice.success("Unenrolled", "The course has been removed from your learning list."),
        )

    def _course_index(self, storage: StorageSelector) -> Dict[str, Course]:
        try:
            return {c.id: c for c in storage.catalog.list_courses(CourseFilters())}
        except StorageError as exc:
            logger.error(f"Could not load courses: {exc}")
            return {}

    def list_enrollments(self, storage: StorageSelector, session: SessionContext) -> List[EnrollmentWithCourse]:
        if not session.is_authenticated:
            return []
        try:
            enrollments = storage.enrollments.list_enrollments(session.current_user.id)
        except StorageError as exc:
            logger.error(f"Could not list enrollments for {session.current_user.id}: {exc}")
            return []
        courses = self._course_index(storage) if enrollments else {}
        return [
            EnrollmentWithCourse(**e.model_dump(), course=courses.get(e.course_id))
            for e in enrollments
        ]

    def get_progress(self, storage: StorageSelector, session: SessionContext, course_id: str) -> ProgressSnapshot:
        snapshot = ProgressSnapshot(course_id=course_id)
        if not session.is_authenticated:
            return snapshot
        user_id = session.current_user.id
        try:
            enrollment = storage.enrollments.get_enrollment(user_id, course_id)
            if enrollment is None:
                return snapshot
            completed_ids = storage.enrollments.completed_lesson_ids(user_id, course_id)
        except StorageError as exc:
            logger.error(f"Could not read progress of {user_id} in {course_id}: {exc}")
            return snapshot
        return ProgressSnapshot(
            course_id=course_id,
            enrolled=True,
            status=enrollment.status,
            progress=enrollment.progress,
            lesson_count=enrollment.lesson_count,
            completed_lessons_count=enrollment.completed_lessons_count,
            completed_lesson_ids=completed_ids,
            completed_at=enrollment.completed_at,
        )

    def dashboard(self, storage: StorageSelector, session: SessionContext) -> DashboardSummary:
        enrollments = self.list_enrollments(storage, session)
        status_counts = {s.value: 0 for s in EnrollmentStatusEnum}
        for e in enrollments:
            status_counts[e.status.value] += 1

        activity = self.learning_activity(storage, session)
        average = sum(e.progress for e in enrollments) / len(enrollments) if enrollments else 0.0
        return DashboardSummary(
            total_enrollments=len(enrollments),
            status_counts=status_counts,
            completed_lessons=sum(e.completed_lessons_count for e in enrollments),
            average_progress=round(average, 1),
            recent=enrollments[:RECENT_ENROLLMENTS_LIMIT],
            recommended=self.recommend_courses(storage, enrollments),
            activity=activity,
            current_streak=current_streak(activity),
        )

    def learning_activity(
        self,
        storage: StorageSelector,
        session: SessionContext,
        days: int = ACTIVITY_WINDOW_DAYS,
        today: Optional[date] = None,
    ) -> List[ActivityDay]:
        """Lessons completed per UTC day, oldest first, ending today. Idle days count 0."""
        if not session.is_authenticated:
            return []
        today = today or utcnow().date()
        start = today - timedelta(days=days - 1)
        try:
            times = storage.enrollments.completion_times(session.current_user.id)
        except StorageError as exc:
            logger.error(f"Could not load learning activity of {session.current_user.id}: {exc}")
            times = []
        counts = Counter(as_utc(t).date() for t in times)
        window = [start + timedelta(days=offset) for offset in range(days)]
        return [ActivityDay(day=day, count=counts.get(day, 0)) for day in window]

    def recommend_courses(self, storage: StorageSelector, enrollments: List[EnrollmentWithCourse]) -> List[Course]:
        """Courses not yet taken, favouring categories already studied, then rating."""
        try:
            courses = storage.catalog.list_courses(CourseFilters(sort=CourseSortEnum.RATING))
        except StorageError as exc:
            logger.error(f"Could not load recommendations: {exc}")
            return []
        enrolled_ids = {e.course_id for e in enrollments}
        studied = {e.course.category.lower() for e in enrollments if e.course and e.course.category}
        candidates = [c for c in courses if c.id not in enrolled_ids]
        candidates.sort(key=lambda c: (c.category or "").lower() not in studied)
        return candidates[:RECOMMENDED_COURSES_LIMIT]


enrollment_service = EnrollmentService()
