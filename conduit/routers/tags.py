from fastapi import APIRouter, Depends

from conduit.dependencies import get_tag_catalog
from conduit.schemas import TagListResponse
from conduit.services.tag_service import TagCatalog

router = APIRouter(prefix="/api/tags", tags=["tags"])

@router.get("", response_model=TagListResponse)
async def list_tags(catalog: TagCatalog = Depends(get_tag_catalog)):
    return TagListResponse(tags=await catalog.list_all())
