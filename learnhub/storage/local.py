import logging
from datetime import datetime
from typing import Generic, List, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

from learnhub.core.constants import (
    StorageBackendEnum, CourseSortEnum, COURSES_NAMESPACE, ENROLLMENTS_NAMESPACE,
)
from learnhub.schemas.course import (
    Course, CourseDetail, CourseRecord, CourseCreate, CourseUpdate, CourseFilters,
    Lesson, LessonCreate, LessonUpdate,
)
from learnhub.schemas.enrollment import Enrollment, EnrollmentRecord, CompletedLessonMarker
from learnhub.schemas.review import Review, ReviewCreate
from learnhub.storage.base import CatalogStorage, EnrollmentStorage, StorageError, DuplicateRecordError
from learnhub.storage.kv import KeyValueStore
from learnhub.storage.seed import demo_courses
from learnhub.utils.dates import utcnow, as_utc
from learnhub.utils.ids import new_id
from learnhub.utils.progress import reconcile_progress

logger = logging.getLogger(__name__)

RecordType = TypeVar("RecordType", bound=BaseModel)


def namespace_key(prefix: str, namespace: str) -> str:
    return f"{prefix}-{namespace}"


class LocalRecordSet(Generic[RecordType]):
    """A JSON array of records kept under one key of a KeyValueStore."""

    def __init__(self, store: KeyValueStore, key: str, model: Type[RecordType]):
        self.store = store
        self.key = key
        self._adapter = TypeAdapter(List[model])

    def exists(self) -> bool:
        return self.store.get_item(self.key) is not None

    def load(self) -> List[RecordType]:
        raw = self.store.get_item(self.key)
        if raw is None:
            return []
        try:
            return self._adapter.validate_json(raw)
        except ValidationError as exc:
            logger.error(f"Corrupt local records under {self.key}: {exc}")
            raise StorageError(f"Corrupt local records under {self.key}") from exc

    def save(self, records: List[RecordType]) -> None:
        self.store.set_item(self.key, self._adapter.dump_json(records).decode("utf-8"))


def _refresh_course(record: CourseRecord) -> CourseRecord:
    record.lessons.sort(key=lambda lesson: (lesson.order_index, as_utc(lesson.created_at)))
    record.lesson_count = len(record.lessons)
    record.review_count = len(record.reviews)
    record.rating = (
        round(sum(r.rating for r in record.reviews) / len(record.reviews), 2) if record.reviews else 0.0
    )
    return record


def _apply(record: RecordType, changes: dict) -> RecordType:
    """Copy of a record with changes applied, validated before it can reach the store."""
    try:
        return type(record).model_validate({**record.model_dump(), **changes})
    except ValidationError as exc:
        raise StorageError(f"Invalid update for {type(record).__name__} {getattr(record, 'id', '')}: {exc}") from exc


def _summary(record: CourseRecord) -> Course:
    return Course.model_validate(record.model_dump(exclude={"lessons", "reviews"}))


def _detail(record: CourseRecord) -> CourseDetail:
    return CourseDetail.model_validate(record.model_dump(exclude={"reviews"}))


def _matches(record: CourseRecord, filters: CourseFilters) -> bool:
    search = filters.active_search
    if search:
        needle = search.lower()
        if needle not in record.title.lower() and needle not in (record.description or "").lower():
            return False

    category = filters.active_category
    if category and (record.category or "").lower() != category.lower():
        return False

    difficulty = filters.active_difficulty
    if difficulty and (record.difficulty or "").strip().lower() != difficulty.lower():
        return False

    instructor = filters.active_instructor
    if instructor and (record.instructor or "").lower() != instructor.lower():
        return False

    return True


def _sorted(records: List[CourseRecord], sort: CourseSortEnum) -> List[CourseRecord]:
    if sort == CourseSortEnum.OLDEST:
        return sorted(records, key=lambda r: as_utc(r.created_at))
    if sort == CourseSortEnum.TITLE:
        return sorted(records, key=lambda r: r.title.lower())
    if sort == CourseSortEnum.RATING:
        newest_first = sorted(records, key=lambda r: as_utc(r.created_at), reverse=True)
        return sorted(newest_first, key=lambda r: r.rating, reverse=True)
    return sorted(records, key=lambda r: as_utc(r.created_at), reverse=True)


class LocalCatalogStorage(CatalogStorage):
    kind = StorageBackendEnum.LOCAL

    def __init__(self, store: KeyValueStore, prefix: str, seed: bool = True):
        self.store = store
        self.courses = LocalRecordSet(store, namespace_key(prefix, COURSES_NAMESPACE), CourseRecord)
        self.enrollments = LocalRecordSet(store, namespace_key(prefix, ENROLLMENTS_NAMESPACE), EnrollmentRecord)
        if seed:
            self._seed()

    def _seed(self):
        with self.store.lock:
            if self.courses.exists():
                return
            records = [_refresh_course(CourseRecord.model_validate(c)) for c in demo_courses()]
            self.courses.save(records)
            logger.info(f"Seeded local catalog with {len(records)} demo courses")

    def _load(self) -> List[CourseRecord]:
        return [_refresh_course(r) for r in self.courses.load()]

    def _find(self, records: List[CourseRecord], course_id: str) -> Optional[CourseRecord]:
        return next((r for r in records if r.id == course_id), None)

    def _find_lesson(self, records: List[CourseRecord], lesson_id: str) -> Tuple[Optional[CourseRecord], Optional[Lesson]]:
        for record in records:
            for lesson in record.lessons:
                if lesson.id == lesson_id:
                    return record, lesson
        return None, None

    def list_courses(self, filters: CourseFilters) -> List[Course]:
        records = [r for r in self._load() if _matches(r, filters)]
        return [_summary(r) for r in _sorted(records, filters.sort)]

    def get_course(self, course_id: str) -> Optional[CourseDetail]:
        record = self._find(self._load(), course_id)
        return _detail(record) if record else None

    def _distinct(self, attribute: str) -> List[str]:
        values = {getattr(r, attribute) for r in self._load()}
        return sorted(v for v in values if v)

    def list_categories(self) -> List[str]:
        return self._distinct("category")

    def list_instructors(self) -> List[str]:
        return self._distinct("instructor")

    def create_course(self, course_in: CourseCreate) -> CourseDetail:
        with self.store.lock:
            records = self._load()
            record = CourseRecord(id=new_id(), created_at=utcnow(), **course_in.model_dump())
            records.append(record)
            self.courses.save(records)
            return _detail(record)

    def update_course(self, course_id: str, course_in: CourseUpdate) -> Optional[CourseDetail]:
        with self.store.lock:
            records = self._load()
            record = self._find(records, course_id)
            if not record:
                return None
            updated = _apply(record, course_in.model_dump(exclude_unset=True))
            records[records.index(record)] = updated
            self.courses.save(records)
            return _detail(_refresh_course(updated))

    def delete_course(self, course_id: str) -> Optional[Course]:
        with self.store.lock:
            records = self._load()
            record = self._find(records, course_id)
            if not record:
                return None
            self.courses.save([r for r in records if r.id != course_id])
            enrollments = self.enrollments.load()
            remaining = [e for e in enrollments if e.course_id != course_id]
            if len(remaining) != len(enrollments):
                self.enrollments.save(remaining)
            return _summary(record)

    def get_lesson(self, lesson_id: str) -> Optional[Lesson]:
        _, lesson = self._find_lesson(self._load(), lesson_id)
        return lesson

    def create_lesson(self, course_id: str, lesson_in: LessonCreate) -> Optional[Lesson]:
        with self.store.lock:
            records = self._load()
            record = self._find(records, course_id)
            if not record:
                return None
            data = lesson_in.model_dump()
            if "order_index" not in lesson_in.model_fields_set:
                data["order_index"] = len(record.lessons)
            lesson = Lesson(id=new_id(), course_id=course_id, created_at=utcnow(), **data)
            record.lessons.append(lesson)
            self.courses.save(records)
            return lesson

    def update_lesson(self, lesson_id: str, lesson_in: LessonUpdate) -> Optional[Lesson]:
        with self.store.lock:
            records = self._load()
            record, lesson = self._find_lesson(records, lesson_id)
            if not lesson:
                return None
            updated = _apply(lesson, lesson_in.model_dump(exclude_unset=True))
            record.lessons[record.lessons.index(lesson)] = updated
            self.courses.save(records)
            return updated

    def delete_lesson(self, lesson_id: str) -> Optional[Lesson]:
        with self.store.lock:
            records = self._load()
            record, lesson = self._find_lesson(records, lesson_id)
            if not lesson:
                return None
            record.lessons = [l for l in record.lessons if l.id != lesson_id]
            self.courses.save(records)
            return lesson

    def upsert_review(self, course_id: str, user_id: str, review_in: ReviewCreate) -> Tuple[Review, bool]:
        with self.store.lock:
            records = self._load()
            record = self._find(records, course_id)
            if not record:
                raise StorageError(f"Course {course_id} not found")
            existing = next((r for r in record.reviews if r.user_id == user_id), None)
            if existing:
                existing.rating = review_in.rating
                existing.comment = review_in.comment
                existing.updated_at = utcnow()
                self.courses.save(records)
                return existing, False
            review = Review(
                id=new_id(), course_id=course_id, user_id=user_id, created_at=utcnow(), **review_in.model_dump()
            )
            record.reviews.append(review)
            self.courses.save(records)
            return review, True

    def list_reviews(self, course_id: str) -> List[Review]:
        record = self._find(self._load(), course_id)
        if not record:
            return []
        return sorted(record.reviews, key=lambda r: as_utc(r.created_at), reverse=True)


class LocalEnrollmentStorage(EnrollmentStorage):
    kind = StorageBackendEnum.LOCAL

    def __init__(self, store: KeyValueStore, prefix: str):
        self.store = store
        self.courses = LocalRecordSet(store, namespace_key(prefix, COURSES_NAMESPACE), CourseRecord)
        self.enrollments = LocalRecordSet(store, namespace_key(prefix, ENROLLMENTS_NAMESPACE), EnrollmentRecord)

    def _lesson_ids(self, course_id: str) -> Optional[List[str]]:
        record = next((c for c in self.courses.load() if c.id == course_id), None)
        if record is None:
            return None
        return [lesson.id for lesson in record.lessons]

    def _to_schema(self, record: EnrollmentRecord) -> Enrollment:
        lesson_ids = set(self._lesson_ids(record.course_id) or [])
        completed = [m for m in record.completed_lessons if m.lesson_id in lesson_ids]
        data = Enrollment.model_validate(record.model_dump(exclude={"completed_lessons"}))
        data.lesson_count = len(lesson_ids)
        data.completed_lessons_count = len(completed)
        last_completed_at = max((m.completed_at for m in completed), key=as_utc, default=None)
        return reconcile_progress(data, last_completed_at)

    def _find(self, records: List[EnrollmentRecord], user_id: str, course_id: str) -> Optional[EnrollmentRecord]:
        return next((r for r in records if r.user_id == user_id and r.course_id == course_id), None)

    def _find_or_raise(self, records: List[EnrollmentRecord], user_id: str, course_id: str) -> EnrollmentRecord:
        record = self._find(records, user_id, course_id)
        if record is None:
            raise StorageError(f"No enrollment for user {user_id} in course {course_id}")
        return record

    def get_enrollment(self, user_id: str, course_id: str) -> Optional[Enrollment]:
        record = self._find(self.enrollments.load(), user_id, course_id)
        return self._to_schema(record) if record else None

    def get_enrollment_by_id(self, enrollment_id: str) -> Optional[Enrollment]:
        record = next((r for r in self.enrollments.load() if r.id == enrollment_id), None)
        return self._to_schema(record) if record else None

    def list_enrollments(self, user_id: str) -> List[Enrollment]:
        records = [r for r in self.enrollments.load() if r.user_id == user_id]
        records.sort(key=lambda r: as_utc(r.started_at), reverse=True)
        return [self._to_schema(r) for r in records]

    def create_enrollment(self, enrollment: Enrollment) -> Enrollment:
        with self.store.lock:
            records = self.enrollments.load()
            if self._find(records, enrollment.user_id, enrollment.course_id):
                raise DuplicateRecordError(
                    f"User {enrollment.user_id} is already enrolled in course {enrollment.course_id}"
                )
            record = EnrollmentRecord(**enrollment.model_dump())
            records.append(record)
            self.enrollments.save(records)
            return self._to_schema(record)

    def save_enrollment(self, enrollment: Enrollment) -> Optional[Enrollment]:
        with self.store.lock:
            records = self.enrollments.load()
            record = next((r for r in records if r.id == enrollment.id), None)
            if record is None:
                return None
            record.status = enrollment.status
            record.progress = enrollment.progress
            record.completed_at = enrollment.completed_at
            record.lesson_count = enrollment.lesson_count
            record.completed_lessons_count = enrollment.completed_lessons_count
            self.enrollments.save(records)
            return self._to_schema(record)

    def delete_enrollment(self, enrollment_id: str) -> Optional[Enrollment]:
        with self.store.lock:
            records = self.enrollments.load()
            record = next((r for r in records if r.id == enrollment_id), None)
            if record is None:
                return None
            data = self._to_schema(record)
            self.enrollments.save([r for r in records if r.id != enrollment_id])
            return data

    def course_lesson_ids(self, course_id: str) -> Optional[List[str]]:
        return self._lesson_ids(course_id)

    def completed_lesson_ids(self, user_id: str, course_id: str) -> List[str]:
        record = self._find(self.enrollments.load(), user_id, course_id)
        if record is None:
            return []
        lesson_ids = set(self._lesson_ids(course_id) or [])
        return [m.lesson_id for m in record.completed_lessons if m.lesson_id in lesson_ids]

    def add_completed_lesson(self, user_id: str, course_id: str, lesson_id: str, completed_at: datetime) -> bool:
        with self.store.lock:
            records = self.enrollments.load()
            record = self._find_or_raise(records, user_id, course_id)
            if any(m.lesson_id == lesson_id for m in record.completed_lessons):
                return False
            record.completed_lessons.append(CompletedLessonMarker(lesson_id=lesson_id, completed_at=completed_at))
            self.enrollments.save(records)
            return True

    def remove_completed_lesson(self, user_id: str, course_id: str, lesson_id: str) -> bool:
        with self.store.lock:
            records = self.enrollments.load()
            record = self._find(records, user_id, course_id)
            if record is None or not any(m.lesson_id == lesson_id for m in record.completed_lessons):
                return False
            record.completed_lessons = [m for m in record.completed_lessons if m.lesson_id != lesson_id]
            self.enrollments.save(records)
            return True

    def clear_completed_lessons(self, user_id: str, course_id: str) -> int:
        with self.store.lock:
            records = self.enrollments.load()
            record = self._find(records, user_id, course_id)
            if record is None:
                return 0
            removed = len(record.completed_lessons)
            record.completed_lessons = []
            self.enrollments.save(records)
            return removed

    def completion_times(self, user_id: str) -> List[datetime]:
        lesson_ids = {c.id: {lesson.id for lesson in c.lessons} for c in self.courses.load()}
        return [
            marker.completed_at
            for record in self.enrollments.load() if record.user_id == user_id
            for marker in record.completed_lessons if marker.lesson_id in lesson_ids.get(record.course_id, ())
        ]
