from sqlalchemy.orm import Session
from typing import List

from learnhub.crud.base import CRUDBase
from learnhub.models.lesson import Lesson
from learnhub.schemas.course import LessonCreate, LessonUpdate


class CRUDLesson(CRUDBase[Lesson, LessonCreate, LessonUpdate]):

    def get_ids_by_course(self, db: Session, *, course_id: str) -> List[str]:
        rows = db.query(Lesson.id).filter(Lesson.course_id == course_id).all()
        return [lesson_id for (lesson_id,) in rows]

    def count_by_course(self, db: Session, *, course_id: str) -> int:
        return db.query(Lesson).filter(Lesson.course_id == course_id).count()

    def next_order_index(self, db: Session, *, course_id: str) -> int:
        return self.count_by_course(db, course_id=course_id)


lesson = CRUDLesson(Lesson)
