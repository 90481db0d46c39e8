from sqlalchemy.orm import Session
from typing import List, Optional

from learnhub.crud.base import CRUDBase
from learnhub.models.enrollment import Enrollment
from learnhub.schemas.enrollment import Enrollment as EnrollmentSchema


class CRUDEnrollment(CRUDBase[Enrollment, EnrollmentSchema, EnrollmentSchema]):

    def get_by_user_and_course(self, db: Session, user_id: str, course_id: str) -> Optional[Enrollment]:
        return (
            db.query(Enrollment)
            .filter(Enrollment.user_id == user_id)
            .filter(Enrollment.course_id == course_id)
            .first()
        )

    def get_by_user(self, db: Session, user_id: str) -> List[Enrollment]:
        return (
            db.query(Enrollment)
            .filter(Enrollment.user_id == user_id)
            .order_by(Enrollment.started_at.desc())
            .all()
        )


enrollment = CRUDEnrollment(Enrollment)
