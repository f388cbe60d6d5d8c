"""
Document lifecycle: upload, generated/summary saves, sharing and deletion.
"""
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import UploadFile
from sqlalchemy import select, or_, and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.exceptions import (
    AuthorizationException, BadRequestException, ResourceNotFoundException, StorageException
)
from core.file_utils import (
    validate_file_type, validate_file_size, storage_filename, guess_mime_type, is_text_like
)
from core.logging import get_logger
from core.storage import LocalObjectStorage
from models.models import Category, Document, User
from services.history_service import HistoryAction, log_history_best_effort

logger = get_logger("documents")


def document_url(document: Document, storage: LocalObjectStorage) -> Optional[str]:
    if not document.has_file:
        return None
    return storage.public_url(document.storage_bucket, document.storage_path)


def document_payload(document: Document, user: User, storage: LocalObjectStorage, with_content: bool = False) -> dict:
    """Response fields for a document as seen by ``user``."""
    payload = {
        "id": document.id,
        "user_id": document.user_id,
        "name": document.name,
        "url": document_url(document, storage),
        "mime_type": document.mime_type,
        "summary": document.summary,
        "category_id": document.category_id,
        "is_shared": document.is_shared,
        "is_owner": document.user_id == user.id,
        "created_at": document.created_at,
    }
    if with_content:
        payload["content"] = document.content
    return payload


async def _check_category(db: AsyncSession, user: User, category_id: Optional[int]) -> None:
    if category_id is None:
        return
    category = await db.get(Category, category_id)
    if category is None or category.user_id != user.id:
        raise ResourceNotFoundException("Catégorie introuvable")


async def get_accessible_document(db: AsyncSession, user: User, document_id: int) -> Document:
    """Owner or, for shared documents, any signed-in user."""
    document = await db.get(Document, document_id)
    if document is None or (document.user_id != user.id and not document.is_shared):
        raise ResourceNotFoundException("Document introuvable")
    return document


async def get_owned_document(db: AsyncSession, user: User, document_id: int) -> Document:
    document = await db.get(Document, document_id)
    if document is None:
        raise ResourceNotFoundException("Document introuvable")
    if document.user_id != user.id:
        raise AuthorizationException("Vous n'êtes pas propriétaire de ce document")
    return document


async def list_visible_documents(db: AsyncSession, user: User) -> List[Document]:
    """Documents the user owns plus documents shared by other users."""
    stmt = select(Document).where(
        or_(
            Document.user_id == user.id,
            and_(Document.is_shared.is_(True), Document.user_id != user.id),
        )
    )
    return list((await db.execute(stmt)).scalars().all())


async def latest_document(db: AsyncSession, user: User) -> Optional[Document]:
    stmt = (
        select(Document)
        .where(Document.user_id == user.id)
        .order_by(Document.created_at.desc(), Document.id.desc())
        .limit(1)
    )
    return (await db.execute(stmt)).scalar_one_or_none()


async def upload_document(
    db: AsyncSession,
    storage: LocalObjectStorage,
    user: User,
    upload: UploadFile,
    name: Optional[str] = None,
    category_id: Optional[int] = None,
) -> Document:
    """
    Store an uploaded file and create its document row.

    A missing category leaves ``category_id`` NULL. The history row is best
    effort. If the row cannot be inserted the stored object is removed again.
    """
    if not upload.filename or not validate_file_type(upload.filename):
        raise BadRequestException(
            f"Type de fichier non autorisé. Types acceptés : {', '.join(settings.allowed_file_types)}"
        )

    content = await upload.read()
    if not validate_file_size(len(content)):
        raise BadRequestException(f"Le fichier doit faire entre 1 octet et {settings.max_file_size_mb} Mo")

    await _check_category(db, user, category_id)

    stamp = time.time()
    object_path = storage_filename(user.id, upload.filename, stamp)
    while storage.exists(settings.storage_bucket, object_path):
        stamp += 0.001
        object_path = storage_filename(user.id, upload.filename, stamp)
    storage.upload(settings.storage_bucket, object_path, content)

    document = Document(
        user_id=user.id,
        name=(name or "").strip() or upload.filename,
        storage_bucket=settings.storage_bucket,
        storage_path=object_path,
        mime_type=guess_mime_type(upload.filename, upload.content_type),
        category_id=category_id,
    )
    db.add(document)
    try:
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        storage.remove(settings.storage_bucket, object_path)
        raise
    await db.refresh(document)

    logger.info("Document uploaded", user_id=user.id, document_id=document.id, size=len(content))
    await log_history_best_effort(user.id, HistoryAction.IMPORT, document.name)
    return document


async def create_text_document(
    db: AsyncSession,
    user: User,
    name: str,
    content: str,
    category_id: Optional[int] = None,
    summary: Optional[str] = None,
    commit: bool = True,
) -> Document:
    """Create an inline-text document (AI generation saves, pasted text)."""
    if not content or not content.strip():
        raise BadRequestException("Le contenu du document est vide")
    await _check_category(db, user, category_id)

    document = Document(
        user_id=user.id,
        name=name.strip(),
        content=content,
        summary=summary,
        category_id=category_id,
    )
    db.add(document)
    if commit:
        await db.commit()
        await db.refresh(document)
    else:
        await db.flush()
    return document


def summary_document_name(source_name: Optional[str], now: Optional[datetime] = None) -> str:
    if source_name:
        return f"Résumé - {source_name}"
    now = now or datetime.now(timezone.utc)
    return f"Résumé automatique - {now.strftime('%d-%m-%Y')}"


async def save_summary(
    db: AsyncSession,
    user: User,
    summary: str,
    source_name: Optional[str] = None,
    source_text: Optional[str] = None,
    category_id: Optional[int] = None,
) -> Document:
    document = await create_text_document(
        db,
        user,
        name=summary_document_name(source_name),
        content=source_text or summary,
        summary=summary,
        category_id=category_id,
    )
    await log_history_best_effort(user.id, HistoryAction.SUMMARY, document.name)
    return document


async def update_document(
    db: AsyncSession,
    user: User,
    document_id: int,
    name: Optional[str] = None,
    category_id: Optional[int] = None,
    clear_category: bool = False,
    is_shared: Optional[bool] = None,
) -> Document:
    document = await get_owned_document(db, user, document_id)
    if name is not None:
        if not name.strip():
            raise BadRequestException("Le nom du document est vide")
        document.name = name.strip()
    if clear_category:
        document.category_id = None
    elif category_id is not None:
        await _check_category(db, user, category_id)
        document.category_id = category_id
    if is_shared is not None:
        document.is_shared = is_shared

    await db.commit()
    await db.refresh(document)
    return document


async def share_document(db: AsyncSession, user: User, document_id: int) -> Document:
    document = await update_document(db, user, document_id, is_shared=True)
    await log_history_best_effort(user.id, HistoryAction.SHARE, document.name)
    return document


@dataclass
class DeletionOutcome:
    document_id: int
    document_name: str
    file_removed: bool = False
    history_logged: bool = False
    warnings: List[str] = field(default_factory=list)


async def delete_document(
    db: AsyncSession, storage: LocalObjectStorage, user: User, document_id: int
) -> DeletionOutcome:
    """
    Delete a document as an explicit sequence with compensation.

    1. stage the stored file for removal (restorable)
    2. delete the row; on failure the file is restored and the error re-raised
    3. purge the staged file (best effort)
    4. append the ``suppression`` history row (best effort)

    The caller only ever observes "deleted" or "nothing changed".
    """
    document = await get_owned_document(db, user, document_id)
    outcome = DeletionOutcome(document_id=document.id, document_name=document.name)

    staged = None
    if document.has_file:
        staged = storage.stage_removal(document.storage_bucket, document.storage_path)

    try:
        await db.delete(document)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        if staged is not None:
            try:
                storage.restore(staged)
            except OSError as restore_error:
                logger.critical(
                    "Could not restore file after failed row deletion",
                    document_id=document_id,
                    path=staged.path,
                    error=str(restore_error),
                )
        logger.error("Document row deletion failed", document_id=document_id, error=str(e))
        raise

    if staged is not None:
        try:
            storage.purge(staged)
            outcome.file_removed = True
        except OSError as e:
            outcome.warnings.append("Le fichier n'a pas pu être purgé du stockage")
            logger.warning("Staged file purge failed", document_id=document_id, error=str(e))

    outcome.history_logged = await log_history_best_effort(
        user.id, HistoryAction.SUPPRESSION, outcome.document_name
    )
    logger.info("Document deleted", user_id=user.id, document_id=document_id)
    return outcome


def read_document_text(document: Document, storage: LocalObjectStorage) -> str:
    """
    Raw text used by the content endpoint and PDF export.

    Inline content wins, then the summary, then a text-like stored file.
    """
    if document.content:
        return document.content
    if document.summary:
        return document.summary
    if document.has_file and is_text_like(document.storage_path, document.mime_type):
        try:
            return storage.read(document.storage_bucket, document.storage_path).decode("utf-8", errors="replace")
        except (OSError, StorageException, ResourceNotFoundException) as e:
            logger.warning("Stored document could not be read", document_id=document.id, error=str(e))
    return ""


GENERATED_PREFIXES = ("Cours :", "Exercices", "Contrôle")


def is_generated(document: Document) -> bool:
    return document.name.startswith(GENERATED_PREFIXES)


async def generated_documents(db: AsyncSession, user: User) -> List[Document]:
    """The user's AI-generated material, newest first."""
    stmt = (
        select(Document)
        .where(Document.user_id == user.id)
        .order_by(Document.created_at.desc(), Document.id.desc())
    )
    return [d for d in (await db.execute(stmt)).scalars().all() if is_generated(d)]
