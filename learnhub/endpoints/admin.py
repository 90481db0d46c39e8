from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from learnhub.schemas.response import APIResponse, Notice
from learnhub.schemas.user import RoleUpdate, UserProfile, SessionContext
from learnhub.services.session import session_service
from learnhub.utils import deps

router = APIRouter()


@router.put("/users/{user_id}/role", response_model=APIResponse[UserProfile])
async def set_user_role(
    *,
    db: Session = Depends(deps.get_db),
    user_id: str,
    role_in: RoleUpdate,
    session: SessionContext = Depends(deps.require_admin)
):
    profile = await session_service.set_role(db, session=session, user_id=user_id, role=role_in.role)
    return APIResponse(
        message="Role updated successfully",
        data=profile,
        notice=Notice.success("Role updated", f"{profile.email} is now {profile.role.value}."),
    )
