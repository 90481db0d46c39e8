from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from learnhub.schemas.response import APIResponse, Notice
from learnhub.schemas.token import AuthResult
from learnhub.schemas.user import SignUpRequest, SignInRequest, ProfileUpdate, UserProfile, SessionContext, SessionState
from learnhub.services.session import session_service
from learnhub.utils import deps

router = APIRouter()


@router.post("/signup", response_model=APIResponse[AuthResult], status_code=status.HTTP_201_CREATED)
def sign_up(
    *,
    db: Session = Depends(deps.get_db),
    sign_up_in: SignUpRequest
):
    result = session_service.sign_up(db, sign_up_in=sign_up_in)
    return APIResponse(
        message="Account created successfully",
        data=result,
        notice=Notice.success("Account created", "Please sign in with your new account."),
    )


@router.post("/login", response_model=APIResponse[AuthResult])
async def sign_in(
    *,
    db: Session = Depends(deps.get_db),
    sign_in_in: SignInRequest
):
    result = await session_service.sign_in(db, sign_in_in=sign_in_in)
    return APIResponse(
        message="Signed in successfully",
        data=result,
        notice=Notice.success("Welcome back", f"Signed in as {result.user.email}."),
    )


@router.post("/refresh", response_model=APIResponse[AuthResult])
async def refresh_token(
    db: Session = Depends(deps.get_db),
    token: str = Depends(deps.require_token)
):
    result = await session_service.refresh(db, token=token)
    return APIResponse(message="Token refreshed successfully", data=result)


@router.post("/logout", response_model=APIResponse[dict])
async def sign_out(
    db: Session = Depends(deps.get_db),
    token: str = Depends(deps.require_token)
):
    redirect_to = await session_service.sign_out(db, token=token)
    return APIResponse(
        message="Signed out successfully",
        data={"redirect_to": redirect_to},
        notice=Notice.success("Signed out", "You have been signed out."),
    )


@router.get("/session", response_model=APIResponse[SessionState])
def read_session(session: SessionContext = Depends(deps.get_session_context)):
    state = SessionState(
        current_user=session.current_user,
        is_loading=session.is_loading,
        is_admin=session.is_admin,
    )
    return APIResponse(message="Session retrieved successfully", data=state)


@router.put("/profile", response_model=APIResponse[UserProfile])
async def update_profile(
    *,
    db: Session = Depends(deps.get_db),
    profile_in: ProfileUpdate,
    session: SessionContext = Depends(deps.require_user)
):
    profile = await session_service.update_profile(db, session=session, profile_in=profile_in)
    return APIResponse(
        message="Profile updated successfully",
        data=profile,
        notice=Notice.success("Profile updated", "Your profile has been saved."),
    )
