"""
Router for the user's document categories.
"""
from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.security import get_current_active_user
from core.storage import LocalObjectStorage, get_storage
from db_config import get_async_db
from models.models import User
from schemas.document import CategoryCreate, CategoryRead, CategoryDetail, CategoryDeleted, DocumentRead
from services.category_service import (
    EMPTY_CATEGORY_MESSAGE,
    list_categories_with_counts,
    get_owned_category,
    category_documents,
    create_category,
    rename_category,
    delete_category,
)
from services.document_service import document_payload

router = APIRouter(prefix="/categories", tags=["Categories"])


def _category_read(category, document_count: int = 0) -> CategoryRead:
    return CategoryRead(
        id=category.id, name=category.name, created_at=category.created_at, document_count=document_count
    )


@router.get("", response_model=List[CategoryRead])
async def list_categories(
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_async_db)
):
    """Categories of the current user with their document counts, sorted by name."""
    rows = await list_categories_with_counts(db, current_user)
    return [_category_read(category, count) for category, count in rows]


@router.post("", response_model=CategoryRead, status_code=status.HTTP_201_CREATED)
async def create_new_category(
    data: CategoryCreate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_async_db)
):
    category = await create_category(db, current_user, data.name)
    return _category_read(category)


@router.get("/{category_id}", response_model=CategoryDetail)
async def get_category(
    category_id: int,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_async_db),
    storage: LocalObjectStorage = Depends(get_storage)
):
    """
    Category page data.

    An empty category carries ``empty_message`` for the client to display.
    """
    category = await get_owned_category(db, current_user, category_id)
    documents = await category_documents(db, category)
    return CategoryDetail(
        id=category.id,
        name=category.name,
        created_at=category.created_at,
        document_count=len(documents),
        documents=[DocumentRead.model_validate(document_payload(d, current_user, storage)) for d in documents],
        empty_message=None if documents else EMPTY_CATEGORY_MESSAGE,
    )


@router.put("/{category_id}", response_model=CategoryRead)
async def update_category(
    category_id: int,
    data: CategoryCreate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_async_db)
):
    category = await rename_category(db, current_user, category_id, data.name)
    return _category_read(category)


@router.delete("/{category_id}", response_model=CategoryDeleted)
async def remove_category(
    category_id: int,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_async_db)
):
    """Delete a category. Its documents are kept and become uncategorized."""
    detached = await delete_category(db, current_user, category_id)
    return CategoryDeleted(category_id=category_id, detached_documents=detached)
