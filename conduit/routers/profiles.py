from fastapi import APIRouter, Depends

from conduit.dependencies import get_profile_service, get_viewer_id, require_viewer_id
from conduit.schemas import ProfileResponse
from conduit.services.profile_service import ProfileService

router = APIRouter(prefix="/api/profiles", tags=["profiles"])

@router.get("/{username}", response_model=ProfileResponse)
async def get_profile(
    username: str,
    viewer_id: int | None = Depends(get_viewer_id),
    service: ProfileService = Depends(get_profile_service),
):
    return ProfileResponse(profile=await service.get(username, viewer_id))

@router.post("/{username}/follow", response_model=ProfileResponse)
async def follow_user(
    username: str,
    viewer_id: int = Depends(require_viewer_id),
    service: ProfileService = Depends(get_profile_service),
):
    return ProfileResponse(profile=await service.follow(viewer_id, username))

@router.delete("/{username}/follow", response_model=ProfileResponse)
async def unfollow_user(
    username: str,
    viewer_id: int = Depends(require_viewer_id),
    service: ProfileService = Depends(get_profile_service),
):
    return ProfileResponse(profile=await service.unfollow(viewer_id, username))
