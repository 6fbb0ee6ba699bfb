"""文章 API."""

from fastapi import APIRouter, Depends, Query

from lares.api.serializers import item_to_dict
from lares.core.store import DEFAULT_PAGE_SIZE, Store, get_store

router = APIRouter(prefix="/api/items", tags=["items"])


@router.get("")
async def list_items(
    since_id: int | None = Query(None, description="只返回此 ID 之后的文章"),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=500, description="每页数量"),
    store: Store = Depends(get_store),
) -> dict:
    """分页获取文章."""
    items = await store.list_items(since_id=since_id, limit=limit)
    return {
        "total_items": await store.count_items(),
        "items": [item_to_dict(item) for item in items],
    }


@router.get("/unread")
async def unread_item_ids(store: Store = Depends(get_store)) -> dict:
    """获取所有未读文章 ID."""
    return {"unread_item_ids": await store.unread_item_ids()}


@router.get("/saved")
async def saved_item_ids(store: Store = Depends(get_store)) -> dict:
    """获取所有已收藏文章 ID."""
    return {"saved_item_ids": await store.saved_item_ids()}


@router.post("/{item_id}/read")
async def mark_read(item_id: int, store: Store = Depends(get_store)) -> dict:
    """标记文章已读."""
    await store.mark_item_read(item_id)
    return {"id": item_id, "is_read": True}


@router.post("/{item_id}/saved")
async def mark_saved(item_id: int, store: Store = Depends(get_store)) -> dict:
    """收藏文章."""
    await store.mark_item_saved(item_id)
    return {"id": item_id, "is_saved": True}


@router.post("/{item_id}/unsaved")
async def mark_unsaved(item_id: int, store: Store = Depends(get_store)) -> dict:
    """取消收藏."""
    await store.mark_item_unsaved(item_id)
    return {"id": item_id, "is_saved": False}
