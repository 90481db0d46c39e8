from sqlalchemy import Column, String, Text, Integer, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from learnhub.core.database import Base
from learnhub.utils.dates import utcnow
from learnhub.utils.ids import new_id


class Lesson(Base):
    __tablename__ = "lessons"

    id = Column(String(36), primary_key=True, default=new_id)
    course_id = Column(String(36), ForeignKey("courses.id", ondelete="CASCADE"), index=True, nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    video_url = Column(String, nullable=False, default="")
    duration = Column(Integer, nullable=True)  # minutes
    order_index = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    course = relationship("Course", back_populates="lessons")
    completions = relationship("CompletedLesson", back_populates="lesson", cascade="all, delete-orphan")
