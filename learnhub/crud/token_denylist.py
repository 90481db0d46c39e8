from sqlalchemy.orm import Session
from typing import Optional

from learnhub.crud.base import CRUDBase
from learnhub.models.token_denylist import TokenDenylist


class CRUDTokenDenylist(CRUDBase[TokenDenylist, TokenDenylist, TokenDenylist]):

    def get_by_jti(self, db: Session, jti: str) -> Optional[TokenDenylist]:
        return db.query(TokenDenylist).filter(TokenDenylist.jti == jti).first()


token_denylist = CRUDTokenDenylist(TokenDenylist)
