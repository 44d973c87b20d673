from fastapi import APIRouter, Depends

from ..core.errors import create_success_response
from ..application.ports.user_repo import UserDto
from ..application.services.profile_service import ProfileService
from ..dependencies import get_profile_service, require_admin
from ..schemas import UserResponse

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/users/{user_id}")
def get_user(
    user_id: str,
    admin: UserDto = Depends(require_admin),
    profile_service: ProfileService = Depends(get_profile_service),
):
    return create_success_response(UserResponse.from_dto(profile_service.get_profile(user_id)).to_payload())
