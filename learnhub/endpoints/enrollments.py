from typing import List
from fastapi import APIRouter, Depends, HTTPException, Query, status

from learnhub.core.constants import EnrollmentErrorEnum, ACTIVITY_WINDOW_DAYS, MAX_ACTIVITY_WINDOW_DAYS
from learnhub.core.exceptions import AuthenticationRequiredError
from learnhub.schemas.enrollment import (
    Enrollment, EnrollmentWithCourse, EnrollmentResult, EnrollmentStatusResponse,
    ProgressSnapshot, DashboardSummary, ActivityDay,
)
from learnhub.schemas.response import APIResponse, Notice
from learnhub.schemas.user import SessionContext
from learnhub.services.enrollment import enrollment_service
from learnhub.storage.negotiation import StorageSelector
from learnhub.utils import deps

router = APIRouter()

_ERROR_STATUS = {
    EnrollmentErrorEnum.COURSE_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    EnrollmentErrorEnum.ENROLLMENT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    EnrollmentErrorEnum.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    EnrollmentErrorEnum.STORAGE_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def _unwrap(result: EnrollmentResult, path: str) -> EnrollmentResult:
    if result.success:
        return result
    if result.error == EnrollmentErrorEnum.AUTH_REQUIRED:
        raise AuthenticationRequiredError(path=path)
    raise HTTPException(
        status_code=_ERROR_STATUS.get(result.error, status.HTTP_400_BAD_REQUEST),
        detail=result.notice.description if result.notice else "Enrollment action failed",
    )


@router.get("/me", response_model=APIResponse[List[EnrollmentWithCourse]])
def my_learning(
    storage: StorageSelector = Depends(deps.get_storage),
    session: SessionContext = Depends(deps.require_user)
):
    enrollments = enrollment_service.list_enrollments(storage, session)
    return APIResponse(message="Enrollments retrieved successfully", data=enrollments)


@router.get("/dashboard", response_model=APIResponse[DashboardSummary])
def dashboard(
    storage: StorageSelector = Depends(deps.get_storage),
    session: SessionContext = Depends(deps.require_user)
):
    return APIResponse(message="Dashboard retrieved successfully", data=enrollment_service.dashboard(storage, session))


@router.get("/activity", response_model=APIResponse[List[ActivityDay]])
def learning_activity(
    days: int = Query(ACTIVITY_WINDOW_DAYS, ge=1, le=MAX_ACTIVITY_WINDOW_DAYS),
    storage: StorageSelector = Depends(deps.get_storage),
    session: SessionContext = Depends(deps.require_user)
):
    activity = enrollment_service.learning_activity(storage, session, days=days)
    return APIResponse(message="Learning activity retrieved successfully", data=activity)


@router.get("/courses/{course_id}/status", response_model=APIResponse[EnrollmentStatusResponse])
def enrollment_status(
    course_id: str,
    storage: StorageSelector = Depends(deps.get_storage),
    session: SessionContext = Depends(deps.get_session_context)
):
    current = enrollment_service.get_enrollment_status(storage, session, course_id)
    return APIResponse(
        message="Enrollment status retrieved successfully",
        data=EnrollmentStatusResponse(course_id=course_id, enrolled=current is not None, status=current),
    )


@router.get("/courses/{course_id}/progress", response_model=APIResponse[ProgressSnapshot])
def course_progress(
    course_id: str,
    storage: StorageSelector = Depends(deps.get_storage),
    session: SessionContext = Depends(deps.get_session_context)
):
    snapshot = enrollment_service.get_progress(storage, session, course_id)
    return APIResponse(message="Progress retrieved successfully", data=snapshot)


@router.post("/courses/{course_id}", response_model=APIResponse[Enrollment])
def enroll(
    course_id: str,
    storage: StorageSelector = Depends(deps.get_storage),
    session: SessionContext = Depends(deps.require_user)
):
    result = _unwrap(enrollment_service.enroll(storage, session, course_id), f"/courses/{course_id}")
    return APIResponse(message=result.notice.title, data=result.enrollment, notice=result.notice)


@router.post("/courses/{course_id}/lessons/{lesson_id}/complete", response_model=APIResponse[ProgressSnapshot])
def complete_lesson(
    course_id: str,
    lesson_id: str,
    storage: StorageSelector = Depends(deps.get_storage),
    session: SessionContext = Depends(deps.require_user)
):
    if not enrollment_service.mark_lesson_complete(storage, session, course_id, lesson_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Enrollment or lesson not found")
    snapshot = enrollment_service.get_progress(storage, session, course_id)
    return APIResponse(
        message="Lesson marked as complete",
        data=snapshot,
        notice=Notice.success("Lesson completed", f"Course progress: {snapshot.progress}%"),
    )


@router.delete("/courses/{course_id}/lessons/{lesson_id}/complete", response_model=APIResponse[ProgressSnapshot])
def uncomplete_lesson(
    course_id: str,
    lesson_id: str,
    storage: StorageSelector = Depends(deps.get_storage),
    session: SessionContext = Depends(deps.require_user)
):
    if not enrollment_service.unmark_lesson_complete(storage, session, course_id, lesson_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Enrollment or lesson not found")
    snapshot = enrollment_service.get_progress(storage, session, course_id)
    return APIResponse(
        message="Lesson marked as incomplete",
        data=snapshot,
        notice=Notice.success("Lesson reopened", f"Course progress: {snapshot.progress}%"),
    )


@router.delete("/{enrollment_id}", response_model=APIResponse[Enrollment])
def unenroll(
    enrollment_id: str,
    storage: StorageSelector = Depends(deps.get_storage),
    session: SessionContext = Depends(deps.require_user)
):
    result = _unwrap(enrollment_service.unenroll(storage, session, enrollment_id), "/my-learning")
    return APIResponse(message=result.notice.title, data=result.enrollment, notice=result.notice)
