from fastapi import APIRouter, Depends

from conduit.dependencies import get_user_service, require_viewer_id
from conduit.schemas import LoginRequest, NewUserRequest, UserResponse, UserUpdateRequest
from conduit.services.user_service import UserService

router = APIRouter(prefix="/api", tags=["users"])

@router.post("/users", status_code=201, response_model=UserResponse)
async def register(data: NewUserRequest, service: UserService = Depends(get_user_service)):
    return UserResponse(user=await service.register(data.user))

@router.post("/users/login", response_model=UserResponse)
async def login(data: LoginRequest, service: UserService = Depends(get_user_service)):
    return UserResponse(user=await service.login(data.user))

@router.get("/user", response_model=UserResponse)
async def current_user(
    viewer_id: int = Depends(require_viewer_id),
    service: UserService = Depends(get_user_service),
):
    return UserResponse(user=await service.current(viewer_id))

@router.put("/user", response_model=UserResponse)
async def update_current_user(
    data: UserUpdateRequest,
    viewer_id: int = Depends(require_viewer_id),
    service: UserService = Depends(get_user_service),
):
    return UserResponse(user=await service.update_current(viewer_id, data.user))
