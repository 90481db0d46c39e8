from sqlalchemy import Column, String, DateTime
from learnhub.core.database import Base
from learnhub.utils.ids import new_id


class TokenDenylist(Base):
    __tablename__ = "token_denylist"

    id = Column(String(36), primary_key=True, default=new_id)
    jti = Column(String, unique=True, index=True, nullable=False)
    exp = Column(DateTime(timezone=True), nullable=False)
