"""
Category CRUD. Deleting a category detaches its documents instead of deleting them.
"""
from typing import List, Tuple

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import BadRequestException, ResourceNotFoundException
from core.logging import get_logger
from models.models import Category, Document, User

logger = get_logger("categories")

EMPTY_CATEGORY_MESSAGE = "Aucun document disponible dans cette catégorie"


def _clean_name(name: str) -> str:
    name = (name or "").strip()
    if not name:
        raise BadRequestException("Le nom de la catégorie est requis")
    return name


async def list_categories_with_counts(db: AsyncSession, user: User) -> List[Tuple[Category, int]]:
    stmt = (
        select(Category, func.count(Document.id))
        .outerjoin(Document, Document.category_id == Category.id)
        .where(Category.user_id == user.id)
        .group_by(Category.id)
        .order_by(Category.name)
    )
    return [(category, count) for category, count in (await db.execute(stmt)).all()]


async def get_owned_category(db: AsyncSession, user: User, category_id: int) -> Category:
    category = await db.get(Category, category_id)
    if category is None or category.user_id != user.id:
        raise ResourceNotFoundException("Catégorie introuvable")
    return category


async def category_documents(db: AsyncSession, category: Category) -> List[Document]:
    stmt = (
        select(Document)
        .where(Document.category_id == category.id)
        .order_by(Document.created_at.desc(), Document.id.desc())
    )
    return list((await db.execute(stmt)).scalars().all())


async def create_category(db: AsyncSession, user: User, name: str) -> Category:
    category = Category(user_id=user.id, name=_clean_name(name))
    db.add(category)
    await db.commit()
    await db.refresh(category)
    logger.info("Category created", user_id=user.id, category_id=category.id)
    return category


async def rename_category(db: AsyncSession, user: User, category_id: int, name: str) -> Category:
    category = await get_owned_category(db, user, category_id)
    category.name = _clean_name(name)
    await db.commit()
    await db.refresh(category)
    return category


async def delete_category(db: AsyncSession, user: User, category_id: int) -> int:
    """Delete the category and return how many documents were detached from it."""
    category = await get_owned_category(db, user, category_id)
    try:
        result = await db.execute(
            update(Document)
            .where(Document.category_id == category.id)
            .values(category_id=None)
            .execution_options(synchronize_session=False)
        )
        await db.delete(category)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("Category deleted", user_id=user.id, category_id=category_id, detached=result.rowcount)
    return result.rowcount
