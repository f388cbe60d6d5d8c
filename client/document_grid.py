"""
Document and category grids.

Both keep the last list loaded from the API and only drop an item once the
server has confirmed its deletion.
"""
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional

from core.logging import get_logger
from services.document_filters import Ownership, SortField, SortOrder, apply_grid_view
from client.api import ClientError, EduKeeperClient
from client.toasts import ToastQueue

logger = get_logger("client.grid")


@dataclass(frozen=True)
class GridFilters:
    search: str = ""
    category_id: Optional[int] = None
    ownership: Ownership = Ownership.all
    sort_field: SortField = SortField.created_at
    sort_order: SortOrder = SortOrder.desc


class DocumentGrid:
    def __init__(self, api: EduKeeperClient, toasts: ToastQueue, user_id: Optional[int] = None):
        self.api = api
        self.toasts = toasts
        self.user_id = user_id
        self.filters = GridFilters()
        self.documents: List[Dict[str, Any]] = []

    async def load(self) -> List[Dict[str, Any]]:
        try:
            self.documents = await self.api.list_documents()
        except ClientError as e:
            self.toasts.error("Impossible de charger les documents", e.message)
        return self.visible()

    def set_filters(self, **changes) -> List[Dict[str, Any]]:
        self.filters = replace(self.filters, **changes)
        return self.visible()

    def toggle_sort_order(self) -> List[Dict[str, Any]]:
        order = SortOrder.asc if self.filters.sort_order is SortOrder.desc else SortOrder.desc
        return self.set_filters(sort_order=order)

    def visible(self) -> List[Dict[str, Any]]:
        """The rendered list: loaded documents with the current filters and sort applied."""
        f = self.filters
        return apply_grid_view(
            self.documents,
            search=f.search or None,
            category_id=f.category_id,
            ownership=f.ownership,
            user_id=self.user_id,
            sort_field=f.sort_field,
            sort_order=f.sort_order,
        )

    async def delete(self, document_id: int) -> bool:
        """
        Delete through the API.

        The document leaves the list only on confirmed success; otherwise it
        stays and an error toast is emitted.
        """
        try:
            outcome = await self.api.delete_document(document_id)
        except ClientError as e:
            logger.warning("Document deletion failed", document_id=document_id, error=e.message)
            self.toasts.error("La suppression a échoué", e.message)
            return False

        self.documents = [d for d in self.documents if d["id"] != document_id]
        self.toasts.success("Document supprimé")
        for warning in outcome.get("warnings", []):
            self.toasts.info("Suppression terminée avec un avertissement", warning)
        return True

    async def export_pdf(self, document_id: int) -> Optional[bytes]:
        try:
            return await self.api.export_pdf(document_id)
        except ClientError as e:
            self.toasts.error("L'export PDF a échoué", e.message)
            return None


class CategoryGrid:
    def __init__(self, api: EduKeeperClient, toasts: ToastQueue):
        self.api = api
        self.toasts = toasts
        self.categories: List[Dict[str, Any]] = []

    async def load(self) -> List[Dict[str, Any]]:
        try:
            self.categories = await self.api.list_categories()
        except ClientError as e:
            self.toasts.error("Impossible de charger les catégories", e.message)
        return self.categories

    async def create(self, name: str) -> Optional[Dict[str, Any]]:
        try:
            category = await self.api.create_category(name)
        except ClientError as e:
            self.toasts.error("Impossible de créer la catégorie", e.message)
            return None
        self.categories = sorted([*self.categories, category], key=lambda c: c["name"].casefold())
        return category

    async def open(self, category_id: int) -> Optional[Dict[str, Any]]:
        """Category card data; ``empty_message`` is set when it has no documents."""
        try:
            return await self.api.get_category(category_id)
        except ClientError as e:
            self.toasts.error("Catégorie introuvable", e.message)
            return None

    async def delete(self, category_id: int, confirmed: bool = True) -> bool:
        if not confirmed:
            return False
        try:
            await self.api.delete_category(category_id)
        except ClientError as e:
            self.toasts.error("La suppression de la catégorie a échoué", e.message)
            return False
        self.categories = [c for c in self.categories if c["id"] != category_id]
        self.toasts.success("Catégorie supprimée")
        return True
