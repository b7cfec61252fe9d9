"""Bookmark CRUD endpoints."""
from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import ValidationError

from api.dependencies import get_bookmark_service, get_current_owner_id
from schemas.bookmark import BookmarkCreate, BookmarkRead, BookmarkUpdate
from schemas.pagination import Page, PageRequest, SortField, SortOrder
from services.bookmark_service import BookmarkService

router = APIRouter(prefix="/bookmarks", tags=["bookmarks"])


@router.post("/", response_model=BookmarkRead, status_code=201)
async def create_bookmark(
    data: BookmarkCreate,
    response: Response,
    owner_id: int = Depends(get_current_owner_id),
    service: BookmarkService = Depends(get_bookmark_service),
) -> BookmarkRead:
    """Create a new bookmark. The Location header points at the created resource."""
    bookmark = await service.create(owner_id, data)
    response.headers["Location"] = f"/bookmarks/{bookmark.id}"
    return bookmark


@router.get("/", response_model=Page[BookmarkRead])
async def list_bookmarks(
    page: int = Query(default=0, ge=0, description="0-based page index"),
    size: int | None = Query(default=None, ge=1, description="Page size"),
    sort_by: SortField = Query(default="created_at", description="Sort field"),
    sort_order: SortOrder = Query(default="asc", description="Sort order"),
    tag: str | None = Query(default=None, description="Only bookmarks with this exact tag"),
    q: str | None = Query(default=None, description="Case-insensitive title/url search"),
    owner_id: int = Depends(get_current_owner_id),
    service: BookmarkService = Depends(get_bookmark_service),
) -> Page[BookmarkRead]:
    """
    List the current owner's bookmarks, one page at a time.

    - **tag**: restrict to bookmarks carrying this tag (exact, case-sensitive)
    - **q**: restrict to bookmarks whose title or url contains this text
    - **tag** and **q** are mutually exclusive
    """
    if tag is not None and q is not None:
        raise HTTPException(status_code=422, detail="Use either 'tag' or 'q', not both")

    page_args = {"page": page, "sort_by": sort_by, "sort_order": sort_order}
    if size is not None:
        page_args["size"] = size
    try:
        page_request = PageRequest(**page_args)
    except ValidationError as e:
        detail = "; ".join(error["msg"] for error in e.errors())
        raise HTTPException(status_code=422, detail=detail) from e

    if tag is not None:
        return await service.list_by_tag(owner_id, tag, page_request)
    if q is not None:
        return await service.search(owner_id, q, page_request)
    return await service.list_owned(owner_id, page_request)


@router.get("/{bookmark_id}", response_model=BookmarkRead)
async def get_bookmark(
    bookmark_id: int,
    owner_id: int = Depends(get_current_owner_id),
    service: BookmarkService = Depends(get_bookmark_service),
) -> BookmarkRead:
    """Get a single bookmark by ID."""
    return await service.get_by_id(owner_id, bookmark_id)


@router.put("/{bookmark_id}", response_model=BookmarkRead)
async def update_bookmark(
    bookmark_id: int,
    data: BookmarkUpdate,
    owner_id: int = Depends(get_current_owner_id),
    service: BookmarkService = Depends(get_bookmark_service),
) -> BookmarkRead:
    """Replace a bookmark's title, url, memo and tags."""
    return await service.update(owner_id, bookmark_id, data)


@router.delete("/{bookmark_id}", status_code=204)
async def delete_bookmark(
    bookmark_id: int,
    owner_id: int = Depends(get_current_owner_id),
    service: BookmarkService = Depends(get_bookmark_service),
) -> None:
    """Delete a bookmark."""
    await service.delete(owner_id, bookmark_id)
