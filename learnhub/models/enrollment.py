from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Enum, UniqueConstraint
from sqlalchemy.orm import relationship
from learnhub.core.database import Base
from learnhub.core.constants import EnrollmentStatusEnum
from learnhub.utils.dates import utcnow
from learnhub.utils.ids import new_id


class Enrollment(Base):
    __tablename__ = "enrollments"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    course_id = Column(String(36), ForeignKey("courses.id", ondelete="CASCADE"), index=True, nullable=False)
    status = Column(Enum(EnrollmentStatusEnum), nullable=False, default=EnrollmentStatusEnum.ENROLLED)
    progress = Column(Integer, nullable=False, default=0)
    started_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "course_id", name="unique_user_course_enrollment"),
    )

    user = relationship("User", back_populates="enrollments")
    course = relationship("Course", back_populates="enrollments")
