from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from learnhub.core.database import Base
from learnhub.utils.dates import utcnow
from learnhub.utils.ids import new_id


class CompletedLesson(Base):
    __tablename__ = "completed_lessons"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    lesson_id = Column(String(36), ForeignKey("lessons.id", ondelete="CASCADE"), index=True, nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "lesson_id", name="unique_user_lesson_completion"),
    )

    lesson = relationship("Lesson", back_populates="completions")
