"""
Pure filtering and sorting over document lists.

Shared by the ``GET /documents`` endpoint and the client-side document grid,
so both accept plain objects or mappings exposing ``name``, ``category_id``,
``user_id``, ``is_shared`` and ``created_at``.
"""
import enum
import unicodedata
from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional


class Ownership(str, enum.Enum):
    all = "all"
    mine = "mine"
    shared = "shared"


class SortField(str, enum.Enum):
    name = "name"
    created_at = "created_at"


class SortOrder(str, enum.Enum):
    asc = "asc"
    desc = "desc"


def _get(document: Any, field: str):
    if isinstance(document, dict):
        return document.get(field)
    return getattr(document, field, None)


def collation_key(value: Optional[str]) -> tuple:
    """
    Locale-style key: accents and case are ignored first, then used as tie-breakers.

    ``"école" < "Ecole2" < "étude"`` and ``"abc" / "ABC"`` compare deterministically.
    """
    value = value or ""
    decomposed = unicodedata.normalize("NFKD", value)
    base = "".join(c for c in decomposed if not unicodedata.combining(c)).casefold()
    return base, value.casefold(), value


def _timestamp(value) -> float:
    if value is None:
        return float("-inf")
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


def matches(
    document: Any,
    search: Optional[str] = None,
    category_id: Optional[int] = None,
    ownership: Ownership = Ownership.all,
    user_id: Optional[int] = None,
) -> bool:
    """A document passes when every active predicate holds."""
    if search and search.casefold() not in (_get(document, "name") or "").casefold():
        return False
    if category_id is not None and _get(document, "category_id") != category_id:
        return False

    ownership = Ownership(ownership)
    if ownership is Ownership.mine and _get(document, "user_id") != user_id:
        return False
    if ownership is Ownership.shared and not (
        _get(document, "is_shared") and _get(document, "user_id") != user_id
    ):
        return False
    return True


def filter_documents(
    documents: Iterable[Any],
    search: Optional[str] = None,
    category_id: Optional[int] = None,
    ownership: Ownership = Ownership.all,
    user_id: Optional[int] = None,
) -> List[Any]:
    return [d for d in documents if matches(d, search, category_id, ownership, user_id)]


def sort_documents(
    documents: Iterable[Any],
    field: SortField = SortField.created_at,
    order: SortOrder = SortOrder.desc,
) -> List[Any]:
    """
    Stable sort by name or creation time.

    Descending is the exact reverse of the ascending result, ties included.
    """
    field = SortField(field)
    indexed = list(enumerate(documents))

    if field is SortField.name:
        ordered = sorted(indexed, key=lambda item: (collation_key(_get(item[1], "name")), item[0]))
    else:
        ordered = sorted(indexed, key=lambda item: (_timestamp(_get(item[1], "created_at")), item[0]))

    result = [document for _, document in ordered]
    if SortOrder(order) is SortOrder.desc:
        result.reverse()
    return result


def apply_grid_view(
    documents: Iterable[Any],
    search: Optional[str] = None,
    category_id: Optional[int] = None,
    ownership: Ownership = Ownership.all,
    user_id: Optional[int] = None,
    sort_field: SortField = SortField.created_at,
    sort_order: SortOrder = SortOrder.desc,
) -> List[Any]:
    return sort_documents(
        filter_documents(documents, search, category_id, ownership, user_id),
        sort_field,
        sort_order,
    )
