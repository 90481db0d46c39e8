from sqlalchemy.orm import Session, selectinload
from sqlalchemy import func, or_
from typing import List, Optional

from learnhub.crud.base import CRUDBase
from learnhub.core.constants import CourseSortEnum
from learnhub.models.course import Course
from learnhub.models.review import Review
from learnhub.schemas.course import CourseCreate, CourseUpdate, CourseFilters


def _escape_like(value: str) -> str:
    """Search text is matched literally, so LIKE wildcards are escaped."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class CRUDCourse(CRUDBase[Course, CourseCreate, CourseUpdate]):

    def _query_with_relationships(self, db: Session):
        return db.query(Course).options(
            selectinload(Course.lessons),
            selectinload(Course.reviews),
        )

    def get(self, db: Session, id: str) -> Optional[Course]:
        return self._query_with_relationships(db).filter(Course.id == id).first()

    def get_filtered(self, db: Session, filters: CourseFilters) -> List[Course]:
        query = self._query_with_relationships(db)

        search = filters.active_search
        if search:
            pattern = f"%{_escape_like(search.lower())}%"
            query = query.filter(
                or_(
                    func.lower(Course.title).like(pattern, escape="\\"),
                    func.lower(Course.description).like(pattern, escape="\\"),
                )
            )

        category = filters.active_category
        if category:
            query = query.filter(func.lower(Course.category) == category.lower())

        difficulty = filters.active_difficulty
        if difficulty:
            query = query.filter(func.lower(func.trim(Course.difficulty)) == difficulty.lower())

        instructor = filters.active_instructor
        if instructor:
            query = query.filter(func.lower(Course.instructor) == instructor.lower())

        if filters.sort == CourseSortEnum.RATING:
            avg_rating = (
                db.query(func.coalesce(func.avg(Review.rating), 0.0))
                .filter(Review.course_id == Course.id)
                .correlate(Course)
                .scalar_subquery()
            )
            query = query.order_by(avg_rating.desc(), Course.created_at.desc())
        elif filters.sort == CourseSortEnum.OLDEST:
            query = query.order_by(Course.created_at.asc())
        elif filters.sort == CourseSortEnum.TITLE:
            query = query.order_by(func.lower(Course.title).asc())
        else:
            query = query.order_by(Course.created_at.desc())

        return query.all()

    def get_distinct_values(self, db: Session, column) -> List[str]:
        rows = (
            db.query(column)
            .filter(column.isnot(None))
            .filter(column != "")
            .distinct()
            .order_by(column)
            .all()
        )
        return [value for (value,) in rows]

    def get_categories(self, db: Session) -> List[str]:
        return self.get_distinct_values(db, Course.category)

    def get_instructors(self, db: Session) -> List[str]:
        return self.get_distinct_values(db, Course.instructor)


course = CRUDCourse(Course)
