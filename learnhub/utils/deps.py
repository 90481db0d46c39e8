from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from learnhub.core.database import SessionLocal
from learnhub.core.exceptions import AuthenticationRequiredError
from learnhub.schemas.user import SessionContext
from learnhub.services.session import session_service
from learnhub.storage.negotiation import StorageSelector

http_bearer = HTTPBearer(auto_error=False)

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def get_storage(request: Request) -> StorageSelector:
    return request.app.state.storage

def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer),
) -> Optional[str]:
    return credentials.credentials if credentials else None

def get_session_context(
    db: Session = Depends(get_db),
    token: Optional[str] = Depends(get_bearer_token),
) -> SessionContext:
    return session_service.resolve(db, token=token)

def require_user(
    request: Request,
    session: SessionContext = Depends(get_session_context),
) -> SessionContext:
    if not session.is_authenticated:
        raise AuthenticationRequiredError(path=request.url.path)
    return session

def require_token(token: Optional[str] = Depends(get_bearer_token)) -> str:
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return token

def require_admin(session: SessionContext = Depends(require_user)) -> SessionContext:
    if not session.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required"
        )
    return session
