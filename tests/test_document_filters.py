"""
Filtering and sorting shared by GET /documents and the client grid.
"""
from datetime import datetime, timedelta, timezone

from services.document_filters import (
    Ownership, SortField, SortOrder, filter_documents, sort_documents, apply_grid_view, collation_key
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

DOCUMENTS = [
    {"id": 1, "name": "Étude de cas", "category_id": 1, "user_id": 1, "is_shared": False, "created_at": NOW},
    {"id": 2, "name": "ecole primaire", "category_id": None, "user_id": 1, "is_shared": True,
     "created_at": NOW - timedelta(days=1)},
    {"id": 3, "name": "Algèbre", "category_id": 2, "user_id": 2, "is_shared": True,
     "created_at": NOW - timedelta(days=3)},
    {"id": 4, "name": "Notes de cours", "category_id": 1, "user_id": 2, "is_shared": True,
     "created_at": (NOW - timedelta(days=2)).isoformat()},
]


def ids(documents):
    return [d["id"] for d in documents]


def test_search_is_case_insensitive_substring():
    assert ids(filter_documents(DOCUMENTS, search="COURS")) == [4]
    assert ids(filter_documents(DOCUMENTS, search="")) == [1, 2, 3, 4]


def test_filters_combine_as_intersection():
    by_category = set(ids(filter_documents(DOCUMENTS, category_id=1)))
    by_owner = set(ids(filter_documents(DOCUMENTS, ownership=Ownership.shared, user_id=1)))
    by_search = set(ids(filter_documents(DOCUMENTS, search="e")))

    combined = filter_documents(
        DOCUMENTS, search="e", category_id=1, ownership=Ownership.shared, user_id=1
    )
    assert set(ids(combined)) == by_category & by_owner & by_search == {4}


def test_ownership_mine_and_shared():
    assert ids(filter_documents(DOCUMENTS, ownership="mine", user_id=1)) == [1, 2]
    # own shared documents are not "shared with me"
    assert ids(filter_documents(DOCUMENTS, ownership="shared", user_id=1)) == [3, 4]


def test_uncategorized_only_in_all_categories_view():
    assert 2 in ids(filter_documents(DOCUMENTS))
    assert 2 not in ids(filter_documents(DOCUMENTS, category_id=1))
    assert 2 not in ids(filter_documents(DOCUMENTS, category_id=2))


def test_sort_by_name_ignores_accents_and_case():
    ordered = sort_documents(DOCUMENTS, SortField.name, SortOrder.asc)
    assert ids(ordered) == [3, 2, 1, 4]
    assert collation_key("école") < collation_key("étude")


def test_sort_by_date_uses_timestamps():
    assert ids(sort_documents(DOCUMENTS, SortField.created_at, SortOrder.asc)) == [3, 4, 2, 1]


def test_descending_is_exact_reverse_with_ties():
    tied = [
        {"id": i, "name": "même nom", "created_at": NOW} for i in range(5)
    ]
    for field in SortField:
        asc = sort_documents(tied + DOCUMENTS, field, SortOrder.asc)
        desc = sort_documents(tied + DOCUMENTS, field, SortOrder.desc)
        assert desc == list(reversed(asc))


def test_grid_view_filters_then_sorts():
    view = apply_grid_view(DOCUMENTS, category_id=1, sort_field="name", sort_order="desc")
    assert ids(view) == [4, 1]
