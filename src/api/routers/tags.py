"""Tag lookup endpoint."""
from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_bookmark_service, get_current_owner_id
from schemas.tag import TagRead
from services.bookmark_service import BookmarkService

router = APIRouter(prefix="/tags", tags=["tags"])


@router.get("/{tag_name}", response_model=TagRead)
async def get_tag(
    tag_name: str,
    _owner_id: int = Depends(get_current_owner_id),
    service: BookmarkService = Depends(get_bookmark_service),
) -> TagRead:
    """
    Look up a tag by exact name.

    Returns 404 once no bookmark references the tag any more.
    """
    tag = await service.get_tag(tag_name)
    if tag is None:
        raise HTTPException(status_code=404, detail="Tag not found")
    return tag
