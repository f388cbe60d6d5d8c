"""
Document and category schemas.
"""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field


class DocumentRead(BaseModel):
    id: int
    user_id: int
    name: str
    url: Optional[str] = None
    mime_type: Optional[str] = None
    summary: Optional[str] = None
    category_id: Optional[int] = None
    is_shared: bool
    is_owner: bool
    created_at: datetime

    class Config:
        from_attributes = True


class DocumentDetail(DocumentRead):
    content: Optional[str] = None


class DocumentCreate(BaseModel):
    """Inline text document (generated content, pasted course)."""
    name: str = Field(..., min_length=1, max_length=500)
    content: str = Field(..., min_length=1)
    category_id: Optional[int] = None


class SummarySave(BaseModel):
    summary: str = Field(..., min_length=1)
    source_name: Optional[str] = Field(None, max_length=400)
    source_text: Optional[str] = None
    category_id: Optional[int] = None


class DocumentUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=500)
    category_id: Optional[int] = None
    is_shared: Optional[bool] = None
    clear_category: bool = Field(False, description="Detach the document from its category")


class DocumentContent(BaseModel):
    id: int
    name: str
    content: str
    is_html: bool


class DeletionResponse(BaseModel):
    document_id: int
    deleted: bool = True
    file_removed: bool
    history_logged: bool
    warnings: List[str] = []


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)


class CategoryRead(BaseModel):
    id: int
    name: str
    created_at: datetime
    document_count: int = 0

    class Config:
        from_attributes = True


class CategoryDetail(CategoryRead):
    documents: List[DocumentRead] = []
    empty_message: Optional[str] = None


class CategoryDeleted(BaseModel):
    category_id: int
    detached_documents: int
