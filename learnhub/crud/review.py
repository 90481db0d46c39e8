from sqlalchemy.orm import Session
from typing import List, Optional

from learnhub.crud.base import CRUDBase
from learnhub.models.review import Review
from learnhub.schemas.review import ReviewCreate


class CRUDReview(CRUDBase[Review, ReviewCreate, ReviewCreate]):

    def get_by_user_and_course(self, db: Session, user_id: str, course_id: str) -> Optional[Review]:
        return (
            db.query(Review)
            .filter(Review.user_id == user_id)
            .filter(Review.course_id == course_id)
            .first()
        )

    def get_by_course(self, db: Session, course_id: str) -> List[Review]:
        return (
            db.query(Review)
            .filter(Review.course_id == course_id)
            .order_by(Review.created_at.desc())
            .all()
        )


review = CRUDReview(Review)
