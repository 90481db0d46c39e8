from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status

from learnhub.core.constants import CourseSortEnum
from learnhub.schemas.course import (
    Course, CourseDetail, CourseCreate, CourseUpdate, CourseFilters,
    Lesson, LessonCreate, LessonUpdate,
)
from learnhub.schemas.response import APIResponse, Notice
from learnhub.schemas.review import Review, ReviewCreate
from learnhub.schemas.user import SessionContext
from learnhub.services.catalog import catalog_service
from learnhub.storage.negotiation import StorageSelector
from learnhub.utils import deps

router = APIRouter()


@router.get("/", response_model=APIResponse[List[Course]])
def list_courses(
    storage: StorageSelector = Depends(deps.get_storage),
    search: Optional[str] = None,
    category: Optional[str] = None,
    difficulty: Optional[str] = None,
    instructor: Optional[str] = None,
    sort: CourseSortEnum = Query(CourseSortEnum.NEWEST),
):
    filters = CourseFilters(search=search, category=category, difficulty=difficulty, instructor=instructor, sort=sort)
    courses, notice = catalog_service.list_courses(storage, filters)
    return APIResponse(message="Courses retrieved successfully", data=courses, notice=notice)


@router.get("/categories", response_model=APIResponse[List[str]])
def list_categories(storage: StorageSelector = Depends(deps.get_storage)):
    return APIResponse(message="Categories retrieved successfully", data=catalog_service.list_categories(storage))


@router.get("/instructors", response_model=APIResponse[List[str]])
def list_instructors(storage: StorageSelector = Depends(deps.get_storage)):
    return APIResponse(message="Instructors retrieved successfully", data=catalog_service.list_instructors(storage))


@router.get("/lessons/{lesson_id}", response_model=APIResponse[Lesson])
def read_lesson(lesson_id: str, storage: StorageSelector = Depends(deps.get_storage)):
    lesson = catalog_service.get_lesson(storage, lesson_id)
    return APIResponse(message="Lesson retrieved successfully", data=lesson)


@router.put("/lessons/{lesson_id}", response_model=APIResponse[Lesson])
def update_lesson(
    *,
    lesson_id: str,
    lesson_in: LessonUpdate,
    storage: StorageSelector = Depends(deps.get_storage),
    session: SessionContext = Depends(deps.require_admin)
):
    lesson = catalog_service.update_lesson(storage, session, lesson_id, lesson_in)
    return APIResponse(message="Lesson updated successfully", data=lesson, notice=Notice.success("Lesson updated"))


@router.delete("/lessons/{lesson_id}", response_model=APIResponse[Lesson])
def delete_lesson(
    *,
    lesson_id: str,
    storage: StorageSelector = Depends(deps.get_storage),
    session: SessionContext = Depends(deps.require_admin)
):
    lesson = catalog_service.delete_lesson(storage, session, lesson_id)
    return APIResponse(message="Lesson deleted successfully", data=lesson, notice=Notice.success("Lesson deleted"))


@router.post("/", response_model=APIResponse[CourseDetail], status_code=status.HTTP_201_CREATED)
def create_course(
    *,
    course_in: CourseCreate,
    storage: StorageSelector = Depends(deps.get_storage),
    session: SessionContext = Depends(deps.require_admin)
):
    course = catalog_service.create_course(storage, session, course_in)
    return APIResponse(
        message="Course created successfully",
        data=course,
        notice=Notice.success("Course created", f"{course.title} has been added to the catalog."),
    )


@router.get("/{course_id}", response_model=APIResponse[CourseDetail])
def read_course(course_id: str, storage: StorageSelector = Depends(deps.get_storage)):
    course = catalog_service.get_course(storage, course_id)
    return APIResponse(message="Course retrieved successfully", data=course)


@router.put("/{course_id}", response_model=APIResponse[CourseDetail])
def update_course(
    *,
    course_id: str,
    course_in: CourseUpdate,
    storage: StorageSelector = Depends(deps.get_storage),
    session: SessionContext = Depends(deps.require_admin)
):
    course = catalog_service.update_course(storage, session, course_id, course_in)
    return APIResponse(message="Course updated successfully", data=course, notice=Notice.success("Course updated"))


@router.delete("/{course_id}", response_model=APIResponse[Course])
def delete_course(
    *,
    course_id: str,
    storage: StorageSelector = Depends(deps.get_storage),
    session: SessionContext = Depends(deps.require_admin)
):
    course = catalog_service.delete_course(storage, session, course_id)
    return APIResponse(message="Course deleted successfully", data=course, notice=Notice.success("Course deleted"))


@router.post("/{course_id}/lessons", response_model=APIResponse[Lesson], status_code=status.HTTP_201_CREATED)
def create_lesson(
    *,
    course_id: str,
    lesson_in: LessonCreate,
    storage: StorageSelector = Depends(deps.get_storage),
    session: SessionContext = Depends(deps.require_admin)
):
    lesson = catalog_service.create_lesson(storage, session, course_id, lesson_in)
    return APIResponse(message="Lesson created successfully", data=lesson, notice=Notice.success("Lesson created"))


@router.get("/{course_id}/reviews", response_model=APIResponse[List[Review]])
def list_reviews(course_id: str, storage: StorageSelector = Depends(deps.get_storage)):
    return APIResponse(message="Reviews retrieved successfully", data=catalog_service.list_reviews(storage, course_id))


@router.post("/{course_id}/reviews", response_model=APIResponse[Review])
def submit_review(
    *,
    course_id: str,
    review_in: ReviewCreate,
    storage: StorageSelector = Depends(deps.get_storage),
    session: SessionContext = Depends(deps.require_user)
):
    review, created = catalog_service.submit_review(storage, session, course_id, review_in)
    title = "Review submitted" if created else "Review updated"
    return APIResponse(message=f"{title} successfully", data=review, notice=Notice.success(title, "Thanks for your feedback!"))
