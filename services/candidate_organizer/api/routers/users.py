"""User management router (admin only).

    GET  /api/v1/users                 - list all users, newest first
    POST /api/v1/users/{user_id}/promote - grant the admin role
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from candidate_organizer.api.dependencies import RequestContext, get_user_store, require_admin
from candidate_organizer.api.routers.auth import UserResponse
from candidate_organizer.logging_config import get_logger
from candidate_organizer.services.user_store import UserStore

router = APIRouter(prefix="/users", tags=["users"])
logger = get_logger(__name__)


class UserListResponse(BaseModel):
    users: list[UserResponse]


class PromoteResponse(BaseModel):
    message: str
    user: UserResponse


@router.get("", response_model=UserListResponse)
async def list_users(
    _admin: RequestContext = Depends(require_admin),
    store: UserStore = Depends(get_user_store),
) -> UserListResponse:
    users = await store.list_users()
    return UserListResponse(users=[UserResponse.from_user(u) for u in users])


@router.post("/{user_id}/promote", response_model=PromoteResponse)
async def promote_user(
    user_id: str,
    admin: RequestContext = Depends(require_admin),
    store: UserStore = Depends(get_user_store),
) -> PromoteResponse:
    # UserNotFoundError renders as 404 through the app-level handler.
    user = await store.promote_to_admin(user_id)
    logger.info("Admin promoted user", admin=admin.user.email, target=user.email)
    return PromoteResponse(
        message="User promoted to admin successfully",
        user=UserResponse.from_user(user),
    )
