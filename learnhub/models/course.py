from sqlalchemy import Column, String, Text, Float, DateTime
from sqlalchemy.orm import relationship
from learnhub.core.database import Base
from learnhub.utils.dates import utcnow
from learnhub.utils.ids import new_id


class Course(Base):
    __tablename__ = "courses"

    id = Column(String(36), primary_key=True, default=new_id)
    title = Column(String, index=True, nullable=False)
    description = Column(Text, nullable=False, default="")
    instructor = Column(String, index=True, nullable=True)
    category = Column(String, index=True, nullable=False, default="")
    difficulty = Column(String, nullable=True)
    duration = Column(Float, nullable=True)  # hours
    thumbnail = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    lessons = relationship(
        "Lesson",
        back_populates="course",
        cascade="all, delete-orphan",
        order_by="Lesson.order_index",
    )
    reviews = relationship("Review", back_populates="course", cascade="all, delete-orphan")
    enrollments = relationship("Enrollment", back_populates="course", cascade="all, delete-orphan")

    @property
    def rating(self) -> float:
        if not self.reviews:
            return 0.0
        return round(sum(r.rating for r in self.reviews) / len(self.reviews), 2)

    @property
    def review_count(self) -> int:
        return len(self.reviews)
