import math
from datetime import datetime
from typing import Optional, Tuple

from learnhub.core.constants import EnrollmentStatusEnum
from learnhub.schemas.enrollment import Enrollment


def compute_progress(completed_count: int, lesson_count: int) -> int:
    """Percentage of lessons completed, rounded half-up and clamped to [0, 100]."""
    if lesson_count <= 0:
        return 0
    value = math.floor(100 * completed_count / lesson_count + 0.5)
    return max(0, min(100, value))


def derive_status(
    status: EnrollmentStatusEnum,
    completed_at: Optional[datetime],
    progress: int,
    now: datetime,
) -> Tuple[EnrollmentStatusEnum, Optional[datetime]]:
    """
    Status and completion time for a freshly computed progress value.

    100% completes the course (keeping the first completion time), anything
    in between is in_progress. At 0% the status is left alone, except that a
    completed course can no longer claim completion and falls back to
    in_progress.
    """
    if progress >= 100:
        if status == EnrollmentStatusEnum.COMPLETED and completed_at is not None:
            return status, completed_at
        return EnrollmentStatusEnum.COMPLETED, now
    if progress > 0:
        return EnrollmentStatusEnum.IN_PROGRESS, None
    if status == EnrollmentStatusEnum.COMPLETED:
        return EnrollmentStatusEnum.IN_PROGRESS, None
    return status, completed_at


def reconcile_progress(enrollment: Enrollment, last_completed_at: Optional[datetime]) -> Enrollment:
    """
    Fills progress from the counts already on the enrollment and brings the
    status in line with it.

    Lesson changes move progress without touching the stored status, so it is
    derived again on every read. A course found complete without a stored
    completion time is dated by its latest completed lesson.
    """
    enrollment.progress = compute_progress(enrollment.completed_lessons_count, enrollment.lesson_count)
    enrollment.status, enrollment.completed_at = derive_status(
        enrollment.status,
        enrollment.completed_at,
        enrollment.progress,
        last_completed_at or enrollment.started_at,
    )
    return enrollment
