"""
Router for documents: listing, upload, generated saves, sharing, deletion and export.
"""
import re
from typing import List, Optional
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from core.security import get_current_active_user
from core.storage import LocalObjectStorage, get_storage
from core.exceptions import ResourceNotFoundException
from core.logging import get_logger
from db_config import get_async_db
from models.models import User
from schemas.document import (
    DocumentRead, DocumentDetail, DocumentCreate, SummarySave, DocumentUpdate,
    DocumentContent, DeletionResponse
)
from services.document_filters import Ownership, SortField, SortOrder, apply_grid_view
from services.document_service import (
    document_payload,
    list_visible_documents,
    latest_document,
    get_accessible_document,
    upload_document,
    create_text_document,
    save_summary,
    update_document,
    share_document,
    delete_document,
    read_document_text,
)
from services.pdf_export import build_document_pdf
from services.text_formatting import looks_like_html

router = APIRouter(prefix="/documents", tags=["Documents"])
logger = get_logger("documents")


def _read(document, user: User, storage: LocalObjectStorage) -> DocumentRead:
    return DocumentRead.model_validate(document_payload(document, user, storage))


def _pdf_filename(name: str) -> str:
    safe = re.sub(r"[^A-Za-z0-9._-]+", "_", name).strip("_") or "document"
    return f"{safe[:100]}.pdf"


@router.get("", response_model=List[DocumentRead])
async def list_documents(
    search: Optional[str] = Query(None, description="Case-insensitive name filter"),
    category_id: Optional[int] = Query(None),
    ownership: Ownership = Query(Ownership.all),
    sort_field: SortField = Query(SortField.created_at),
    sort_order: SortOrder = Query(SortOrder.desc),
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_async_db),
    storage: LocalObjectStorage = Depends(get_storage)
):
    """Own documents plus documents shared by others, filtered and sorted."""
    documents = await list_visible_documents(db, current_user)
    view = apply_grid_view(
        documents,
        search=search,
        category_id=category_id,
        ownership=ownership,
        user_id=current_user.id,
        sort_field=sort_field,
        sort_order=sort_order,
    )
    return [_read(d, current_user, storage) for d in view]


@router.get("/latest", response_model=Optional[DocumentRead])
async def get_latest_document(
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_async_db),
    storage: LocalObjectStorage = Depends(get_storage)
):
    """Most recently created document of the current user, or null."""
    document = await latest_document(db, current_user)
    return _read(document, current_user, storage) if document else None


@router.post("/upload", response_model=DocumentRead, status_code=status.HTTP_201_CREATED)
async def upload_file(
    file: UploadFile = File(...),
    name: Optional[str] = Form(None),
    category_id: Optional[int] = Form(None),
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_async_db),
    storage: LocalObjectStorage = Depends(get_storage)
):
    """
    Upload a file as a new document.

    - **file**: pdf, txt, md, html, docx, doc or an image
    - **category_id**: optional; omitted means uncategorized
    """
    document = await upload_document(db, storage, current_user, file, name=name, category_id=category_id)
    return _read(document, current_user, storage)


@router.post("", response_model=DocumentRead, status_code=status.HTTP_201_CREATED)
async def create_document(
    data: DocumentCreate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_async_db),
    storage: LocalObjectStorage = Depends(get_storage)
):
    """Save inline text content (pasted course, generated material)."""
    document = await create_text_document(
        db, current_user, name=data.name, content=data.content, category_id=data.category_id
    )
    return _read(document, current_user, storage)


@router.post("/summary", response_model=DocumentRead, status_code=status.HTTP_201_CREATED)
async def save_summary_document(
    data: SummarySave,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_async_db),
    storage: LocalObjectStorage = Depends(get_storage)
):
    document = await save_summary(
        db,
        current_user,
        summary=data.summary,
        source_name=data.source_name,
        source_text=data.source_text,
        category_id=data.category_id,
    )
    return _read(document, current_user, storage)


@router.get("/{document_id}", response_model=DocumentDetail)
async def get_document(
    document_id: int,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_async_db),
    storage: LocalObjectStorage = Depends(get_storage)
):
    document = await get_accessible_document(db, current_user, document_id)
    return DocumentDetail.model_validate(document_payload(document, current_user, storage, with_content=True))


@router.put("/{document_id}", response_model=DocumentRead)
async def edit_document(
    document_id: int,
    data: DocumentUpdate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_async_db),
    storage: LocalObjectStorage = Depends(get_storage)
):
    """Rename, move between categories or toggle sharing. Owner only."""
    document = await update_document(
        db,
        current_user,
        document_id,
        name=data.name,
        category_id=data.category_id,
        clear_category=data.clear_category,
        is_shared=data.is_shared,
    )
    return _read(document, current_user, storage)


@router.post("/{document_id}/share", response_model=DocumentRead)
async def share(
    document_id: int,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_async_db),
    storage: LocalObjectStorage = Depends(get_storage)
):
    document = await share_document(db, current_user, document_id)
    return _read(document, current_user, storage)


@router.delete("/{document_id}", response_model=DeletionResponse)
async def remove_document(
    document_id: int,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_async_db),
    storage: LocalObjectStorage = Depends(get_storage)
):
    """
    Delete a document and its stored file.

    Either everything is removed or nothing is. Purge and history failures
    after the row is gone are reported in ``warnings``.
    """
    outcome = await delete_document(db, storage, current_user, document_id)
    return DeletionResponse(
        document_id=outcome.document_id,
        file_removed=outcome.file_removed,
        history_logged=outcome.history_logged,
        warnings=outcome.warnings,
    )


@router.get("/{document_id}/content", response_model=DocumentContent)
async def get_document_content(
    document_id: int,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_async_db),
    storage: LocalObjectStorage = Depends(get_storage)
):
    """Text shown by the in-app viewer."""
    document = await get_accessible_document(db, current_user, document_id)
    text = read_document_text(document, storage)
    if not text and not document.has_file:
        raise ResourceNotFoundException("Ce document n'a pas de contenu")
    return DocumentContent(id=document.id, name=document.name, content=text, is_html=looks_like_html(text))


@router.get("/{document_id}/export.pdf")
async def export_document_pdf(
    document_id: int,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_async_db),
    storage: LocalObjectStorage = Depends(get_storage)
):
    """Render the document text to PDF. Oversized or empty text yields a placeholder page."""
    document = await get_accessible_document(db, current_user, document_id)
    pdf = build_document_pdf(document.name, read_document_text(document, storage))
    logger.info("Document exported to PDF", user_id=current_user.id, document_id=document.id, size=len(pdf))
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{_pdf_filename(document.name)}"'},
    )
