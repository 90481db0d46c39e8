from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Dict
from datetime import date, datetime

from learnhub.core.constants import EnrollmentStatusEnum, EnrollmentErrorEnum
from learnhub.schemas.course import Course
from learnhub.schemas.response import Notice


class Enrollment(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    course_id: str
    status: EnrollmentStatusEnum = EnrollmentStatusEnum.ENROLLED
    started_at: datetime
    completed_at: Optional[datetime] = None
    progress: int = 0
    lesson_count: int = 0
    completed_lessons_count: int = 0


class CompletedLessonMarker(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    lesson_id: str
    completed_at: datetime


class EnrollmentRecord(Enrollment):
    """Shape of an enrollment in the local fallback store."""
    completed_lessons: List[CompletedLessonMarker] = Field(default_factory=list)


class EnrollmentWithCourse(Enrollment):
    course: Optional[Course] = None


class ProgressSnapshot(BaseModel):
    course_id: str
    enrolled: bool = False
    status: Optional[EnrollmentStatusEnum] = None
    progress: int = 0
    lesson_count: int = 0
    completed_lessons_count: int = 0
    completed_lesson_ids: List[str] = Field(default_factory=list)
    completed_at: Optional[datetime] = None


class ActivityDay(BaseModel):
    day: date
    count: int = 0


class DashboardSummary(BaseModel):
    total_enrollments: int = 0
    status_counts: Dict[str, int] = Field(default_factory=dict)
    completed_lessons: int = 0
    average_progress: float = 0.0
    recent: List[EnrollmentWithCourse] = Field(default_factory=list)
    recommended: List[Course] = Field(default_factory=list)
    activity: List[ActivityDay] = Field(default_factory=list)
    current_streak: int = 0


class EnrollmentStatusResponse(BaseModel):
    course_id: str
    enrolled: bool
    status: Optional[EnrollmentStatusEnum] = None


class EnrollmentResult(BaseModel):
    """Outcome of a mutating enrollment action."""
    success: bool
    enrollment: Optional[Enrollment] = None
    error: Optional[EnrollmentErrorEnum] = None
    notice: Optional[Notice] = None
    already_enrolled: bool = False
    redirect_to: Optional[str] = None
