from sqlalchemy import Column, String, DateTime, ForeignKey, JSON, Enum
from sqlalchemy.orm import relationship
from learnhub.core.database import Base
from learnhub.core.constants import RoleEnum
from learnhub.utils.dates import utcnow
from learnhub.utils.ids import new_id


class AuthAccount(Base):
    """Identity provider record; the profile row in `users` hangs off it."""
    __tablename__ = "auth_accounts"

    id = Column(String(36), primary_key=True, default=new_id)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(Enum(RoleEnum), nullable=False, default=RoleEnum.MEMBER)
    user_metadata = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    last_sign_in_at = Column(DateTime(timezone=True), nullable=True)

    profile = relationship("User", back_populates="account", uselist=False, cascade="all, delete-orphan")


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), ForeignKey("auth_accounts.id", ondelete="CASCADE"), primary_key=True)
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=True)
    avatar = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    account = relationship("AuthAccount", back_populates="profile")
    enrollments = relationship("Enrollment", back_populates="user", cascade="all, delete-orphan")
    reviews = relationship("Review", back_populates="user", cascade="all, delete-orphan")
