from datetime import datetime

from sqlalchemy.orm import Session
from typing import List, Optional

from learnhub.crud.base import CRUDBase
from learnhub.models.completed_lesson import CompletedLesson
from learnhub.models.lesson import Lesson
from learnhub.schemas.enrollment import CompletedLessonMarker


class CRUDCompletedLesson(CRUDBase[CompletedLesson, CompletedLessonMarker, CompletedLessonMarker]):

    def _query_for_course(self, db: Session, user_id: str, course_id: str):
        return (
            db.query(CompletedLesson)
            .join(Lesson, Lesson.id == CompletedLesson.lesson_id)
            .filter(CompletedLesson.user_id == user_id)
            .filter(Lesson.course_id == course_id)
        )

    def get_by_user_and_lesson(self, db: Session, user_id: str, lesson_id: str) -> Optional[CompletedLesson]:
        return (
            db.query(CompletedLesson)
            .filter(CompletedLesson.user_id == user_id)
            .filter(CompletedLesson.lesson_id == lesson_id)
            .first()
        )

    def get_by_user_and_course(self, db: Session, user_id: str, course_id: str) -> List[CompletedLesson]:
        return self._query_for_course(db, user_id, course_id).order_by(CompletedLesson.completed_at).all()

    def get_completion_times(self, db: Session, user_id: str) -> List[datetime]:
        rows = (
            db.query(CompletedLesson.completed_at)
            .join(Lesson, Lesson.id == CompletedLesson.lesson_id)
            .filter(CompletedLesson.user_id == user_id)
            .all()
        )
        return [completed_at for (completed_at,) in rows]

    def delete_by_user_and_course(self, db: Session, user_id: str, course_id: str) -> int:
        markers = self._query_for_course(db, user_id, course_id).all()
        for marker in markers:
            db.delete(marker)
        return len(markers)


completed_lesson = CRUDCompletedLesson(CompletedLesson)
