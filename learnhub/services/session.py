import logging
import threading
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import HTTPException, status
from jose import JWTError
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from learnhub.core.config import settings
from learnhub.core.constants import AuthEventEnum, RoleEnum, DASHBOARD_ROUTE, LANDING_ROUTE, LOGIN_ROUTE
from learnhub.core.security import get_password_hash, verify_password, create_access_token, decode_access_token
from learnhub.crud.token_denylist import token_denylist as crud_token_denylist
from learnhub.crud.user import auth_account as crud_auth_account, user as crud_user
from learnhub.models.user import AuthAccount
from learnhub.schemas.token import Token, TokenPayload, AuthResult
from learnhub.schemas.user import SignUpRequest, SignInRequest, ProfileUpdate, UserProfile, SessionContext
from learnhub.utils.dates import utcnow
from learnhub.utils.events import EventBus, event_bus

logger = logging.getLogger(__name__)


class IdentityRegistry:
    """Resolved users by id, kept current by auth-state events."""

    def __init__(self):
        self._users: Dict[str, UserProfile] = {}
        self._lock = threading.Lock()

    def get(self, user_id: str) -> Optional[UserProfile]:
        with self._lock:
            return self._users.get(user_id)

    def put(self, user: UserProfile) -> None:
        with self._lock:
            self._users[user.id] = user

    def evict(self, user_id: str) -> None:
        with self._lock:
            self._users.pop(user_id, None)

    def clear(self) -> None:
        with self._lock:
            self._users.clear()

    async def on_identity_changed(self, event_type: AuthEventEnum, data: Dict[str, Any]):
        if data.get("user"):
            self.put(UserProfile.model_validate(data["user"]))

    async def on_signed_out(self, event_type: AuthEventEnum, data: Dict[str, Any]):
        if data.get("user_id"):
            self.evict(data["user_id"])

    def attach(self, bus: EventBus) -> None:
        for event_type in (AuthEventEnum.SIGNED_IN, AuthEventEnum.TOKEN_REFRESHED, AuthEventEnum.USER_UPDATED):
            bus.subscribe(event_type, self.on_identity_changed)
        bus.subscribe(AuthEventEnum.SIGNED_OUT, self.on_signed_out)


def _safe_redirect(path: Optional[str]) -> str:
    if path and path.startswith("/") and not path.startswith("//"):
        return path
    return DASHBOARD_ROUTE


class SessionService:
    def __init__(self, registry: IdentityRegistry, bus: EventBus):
        self.registry = registry
        self.bus = bus

    def _profile_from_metadata(self, account: AuthAccount) -> UserProfile:
        metadata = account.user_metadata or {}
        return UserProfile(
            id=account.id,
            email=account.email,
            name=metadata.get("name"),
            avatar=metadata.get("avatar"),
            role=account.role,
            created_at=account.created_at,
        )

    def load_profile(self, db: Session, account: AuthAccount) -> UserProfile:
        """Profile row merged with the account, or the account metadata if the row is unavailable."""
        profile = self._profile_from_metadata(account)
        try:
            row = crud_user.get(db, id=account.id)
        except SQLAlchemyError as exc:
            db.rollback()
            logger.warning(f"Profile lookup failed for {account.id}, using account metadata: {exc}")
            return profile
        if row is None:
            return profile
        return profile.model_copy(update={
            "name": row.name or profile.name,
            "avatar": row.avatar or profile.avatar,
            "created_at": row.created_at,
        })

    def _decode(self, db: Session, token: str) -> TokenPayload:
        try:
            token_data = TokenPayload(**decode_access_token(token))
        except (JWTError, ValidationError):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
        if token_data.jti and crud_token_denylist.get_by_jti(db, jti=token_data.jti):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token has been revoked")
        return token_data

    def _revoke(self, db: Session, token_data: TokenPayload) -> None:
        if not token_data.jti or not token_data.exp:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Token missing JTI or expiration claim")
        crud_token_denylist.create(
            db,
            obj_in={"jti": token_data.jti, "exp": datetime.fromtimestamp(token_data.exp, tz=timezone.utc)},
        )

    def sign_up(self, db: Session, *, sign_up_in: SignUpRequest) -> AuthResult:
        email = sign_up_in.email.lower()
        if crud_auth_account.get_by_email(db, email=email):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="A user with this email already exists.",
            )

        account = crud_auth_account.create(
            db,
            obj_in={
                "email": email,
                "hashed_password": get_password_hash(sign_up_in.password),
                "role": RoleEnum.MEMBER,
                "user_metadata": {"name": sign_up_in.name, "avatar": None},
            },
        )

        try:
            crud_user.create(db, obj_in={"id": account.id, "email": email, "name": sign_up_in.name})
        except SQLAlchemyError as exc:
            db.rollback()
            logger.warning(f"Profile row not created for {email}, continuing with account metadata: {exc}")

        logger.info(f"New account registered: {email}")
        return AuthResult(user=self.load_profile(db, account), redirect_to=LOGIN_ROUTE)

    async def sign_in(self, db: Session, *, sign_in_in: SignInRequest) -> AuthResult:
        account = crud_auth_account.get_by_email(db, email=sign_in_in.email)
        if not account or not verify_password(sign_in_in.password, account.hashed_password):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Incorrect email or password",
            )

        crud_auth_account.update(db, db_obj=account, obj_in={"last_sign_in_at": utcnow()})
        access_token = create_access_token(user_id=account.id, email=account.email)
        profile = self.load_profile(db, account)

        await self.bus.publish(AuthEventEnum.SIGNED_IN, {"user": profile.model_dump()})
        return AuthResult(
            token=Token(access_token=access_token),
            user=profile,
            redirect_to=_safe_redirect(sign_in_in.redirect),
        )

    async def refresh(self, db: Session, *, token: str) -> AuthResult:
        token_data = self._decode(db, token)
        account = crud_auth_account.get(db, id=token_data.sub)
        if not account:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")

        self._revoke(db, token_data)
        access_token = create_access_token(user_id=account.id, email=account.email)
        profile = self.load_profile(db, account)

        await self.bus.publish(AuthEventEnum.TOKEN_REFRESHED, {"user": profile.model_dump()})
        return AuthResult(token=Token(access_token=access_token), user=profile)

    async def sign_out(self, db: Session, *, token: str) -> str:
        token_data = self._decode(db, token)
        self._revoke(db, token_data)
        await self.bus.publish(AuthEventEnum.SIGNED_OUT, {"user_id": token_data.sub})
        return LANDING_ROUTE

    def resolve(self, db: Session, *, token: Optional[str]) -> SessionContext:
        """Session for a bearer token. Missing, invalid or revoked tokens give an anonymous session."""
        if not token:
            return SessionContext()
        try:
            token_data = self._decode(db, token)
        except HTTPException as exc:
            logger.info(f"Ignoring bearer token: {exc.detail}")
            return SessionContext()

        user = self.registry.get(token_data.sub)
        if user is None:
            account = crud_auth_account.get(db, id=token_data.sub)
            if not account:
                return SessionContext()
            user = self.load_profile(db, account)
            self.registry.put(user)
        return SessionContext(current_user=user, token=token)

    async def update_profile(self, db: Session, *, session: SessionContext, profile_in: ProfileUpdate) -> UserProfile:
        if not session.is_authenticated:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
        account = crud_auth_account.get(db, id=session.current_user.id)
        if not account:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

        changes = profile_in.model_dump(exclude_unset=True)
        metadata = dict(account.user_metadata or {})
        metadata.update(changes)
        crud_auth_account.update(db, db_obj=account, obj_in={"user_metadata": metadata})

        try:
            row = crud_user.get(db, id=account.id)
            if row:
                crud_user.update(db, db_obj=row, obj_in=changes)
            else:
                crud_user.create(db, obj_in={"id": account.id, "email": account.email, **metadata})
        except SQLAlchemyError as exc:
            db.rollback()
            logger.warning(f"Profile row not updated for {account.id}, account metadata updated only: {exc}")

        profile = self.load_profile(db, account)
        await self.bus.publish(AuthEventEnum.USER_UPDATED, {"user": profile.model_dump()})
        return profile

    async def set_role(self, db: Session, *, session: SessionContext, user_id: str, role: RoleEnum) -> UserProfile:
        if not session.is_admin:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin privileges required")
        account = crud_auth_account.get(db, id=user_id)
        if not account:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

        crud_auth_account.update(db, db_obj=account, obj_in={"role": role})
        profile = self.load_profile(db, account)
        logger.info(f"Role of {account.email} set to {role.value} by {session.current_user.email}")
        await self.bus.publish(AuthEventEnum.USER_UPDATED, {"user": profile.model_dump()})
        return profile

    def seed_initial_admin(self, db: Session, email: Optional[str] = None) -> bool:
        """Grants the admin role to the configured account, if it exists and is not admin yet."""
        email = email or settings.INITIAL_ADMIN_EMAIL
        if not email:
            return False
        account = crud_auth_account.get_by_email(db, email=email)
        if not account:
            logger.warning(f"Initial admin account {email} not found; it will not be promoted")
            return False
        if account.role == RoleEnum.ADMIN:
            return False
        crud_auth_account.update(db, db_obj=account, obj_in={"role": RoleEnum.ADMIN})
        self.registry.evict(account.id)
        logger.info(f"Granted admin role to {email}")
        return True


identity_registry = IdentityRegistry()
identity_registry.attach(event_bus)
session_service = SessionService(identity_registry, event_bus)
