from pydantic import BaseModel
from typing import Optional

from learnhub.schemas.user import UserProfile


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"

class TokenPayload(BaseModel):
    sub: str
    email: Optional[str] = None
    jti: Optional[str] = None
    exp: Optional[int] = None

class AuthResult(BaseModel):
    token: Optional[Token] = None
    user: UserProfile
    redirect_to: Optional[str] = None
