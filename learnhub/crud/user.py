from sqlalchemy.orm import Session
from typing import Optional

from learnhub.crud.base import CRUDBase
from learnhub.models.user import AuthAccount, User
from learnhub.schemas.user import ProfileUpdate


class CRUDAuthAccount(CRUDBase[AuthAccount, ProfileUpdate, ProfileUpdate]):

    def get_by_email(self, db: Session, email: str) -> Optional[AuthAccount]:
        return db.query(AuthAccount).filter(AuthAccount.email == email.lower()).first()


class CRUDUser(CRUDBase[User, ProfileUpdate, ProfileUpdate]):

    def get_by_email(self, db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == email.lower()).first()


auth_account = CRUDAuthAccount(AuthAccount)
user = CRUDUser(User)
