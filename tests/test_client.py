"""
Client package: API wrapper, XP store, grids and route guard, against a
mocked HTTP transport.
"""
import json

import httpx
import pytest

from client import (
    CategoryGrid,
    ClientError,
    DocumentGrid,
    EduKeeperClient,
    ToastKind,
    ToastQueue,
    XPStore,
    award_xp,
    guard,
    nav_items,
)
from client.xp_store import DeltaApplied, DeltaConfirmed, DeltaReverted, Hydrated, XPState, reduce


def _envelope(status_code, message, error_type="HTTPException"):
    return httpx.Response(
        status_code, json={"error": {"type": error_type, "message": message, "status_code": status_code}}
    )


def _api(handler, token="token"):
    return EduKeeperClient("http://edukeeper.test", token=token, transport=httpx.MockTransport(handler))


@pytest.mark.anyio
async def test_summarize_empty_text_never_reaches_server():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json={})

    async with _api(handler) as api:
        with pytest.raises(ClientError) as exc:
            await api.summarize("   ")
    assert exc.value.message == "Veuillez saisir un texte à résumer"
    assert requests == []


@pytest.mark.anyio
async def test_error_envelope_becomes_client_error():
    async with _api(lambda request: _envelope(404, "Document not found")) as api:
        with pytest.raises(ClientError) as exc:
            await api.get_document(99)
    assert exc.value.status_code == 404
    assert exc.value.message == "Document not found"
    assert exc.value.error_type == "HTTPException"


@pytest.mark.anyio
async def test_login_stores_token_and_sends_it():
    seen = []

    def handler(request):
        seen.append(request.headers.get("Authorization"))
        if request.url.path == "/auth/login":
            return httpx.Response(200, json={"access_token": "abc", "token_type": "bearer", "expires_in": 60, "user": {}})
        return httpx.Response(200, json={"id": 1})

    async with _api(handler, token=None) as api:
        assert await api.session() is None
        await api.login("a@example.com", "secret123")
        await api.profile()
    assert seen == [None, "Bearer abc"]


def test_reducer_keeps_pending_deltas_on_top_of_base():
    state = reduce(XPState(), Hydrated(xp=90))
    state = reduce(state, DeltaApplied("a", 10))
    state = reduce(state, DeltaApplied("b", 20))
    assert state.xp == 120
    assert state.level == 2

    state = reduce(state, DeltaConfirmed("a", xp=100))
    assert state.base_xp == 100
    assert state.xp == 120

    state = reduce(state, DeltaReverted("b"))
    assert state.xp == 100
    assert not state.has_pending



def test_overlapping_awards_are_not_double_counted():
    state = reduce(XPState(), Hydrated(xp=0))
    state = reduce(state, DeltaApplied("a", 10))
    state = reduce(state, DeltaApplied("b", 20))

    # refetch for "a" already includes "b"
    state = reduce(state, DeltaConfirmed("a", xp=30))
    assert state.xp == 30
    state = reduce(state, DeltaConfirmed("b", xp=30))
    assert state.xp == 30
    assert not state.has_pending


def test_stale_confirmation_never_lowers_xp():
    state = reduce(XPState(), Hydrated(xp=0))
    state = reduce(state, DeltaApplied("a", 10))
    state = reduce(state, DeltaApplied("b", 20))

    state = reduce(state, DeltaConfirmed("b", xp=30))
    # "a" refetched before "b" reached the server
    state = reduce(state, DeltaConfirmed("a", xp=10))
    assert state.xp == 30

    # repeated confirmation is ignored
    assert reduce(state, DeltaConfirmed("a", xp=10)) == state

@pytest.mark.anyio
async def test_award_is_optimistic_then_confirmed():
    store = XPStore(XPState(base_xp=95, hydrated=True))
    toasts = ToastQueue()
    during_award = []

    def handler(request):
        if request.url.path == "/xp/award":
            during_award.append(store.state.xp)
            assert json.loads(request.content)["action"] == "document_upload"
            return httpx.Response(200, json={"xp": 105, "level": 2, "action": "document_upload", "xp_gained": 10})
        return httpx.Response(200, json={"xp": 105, "level": 2})

    async with _api(handler) as api:
        result = await award_xp(store, api, "document_upload", "cours.pdf", toasts=toasts)

    assert during_award == [105]
    assert result.success is True
    assert result.xp_gained == 10
    assert store.state.xp == 105
    assert not store.state.has_pending
    titles = [t.title for t in toasts.toasts]
    assert titles == ["+10 XP", "Niveau supérieur !"]


@pytest.mark.anyio
async def test_award_failure_reverts_and_notifies():
    store = XPStore(XPState(base_xp=40, hydrated=True))
    toasts = ToastQueue()
    seen_states = []
    store.subscribe(lambda state: seen_states.append(state.xp))

    async with _api(lambda request: _envelope(500, "Internal server error")) as api:
        result = await award_xp(store, api, "generate_control", toasts=toasts)

    assert result.success is False
    assert seen_states == [80, 40]
    assert store.state.xp == 40
    assert [t.kind for t in toasts.toasts] == [ToastKind.error]


@pytest.mark.anyio
async def test_award_unknown_action_changes_nothing():
    store = XPStore(XPState(base_xp=10))
    async with _api(lambda request: httpx.Response(200, json={})) as api:
        result = await award_xp(store, api, "teleport")
    assert result.success is False
    assert store.state.xp == 10


def _documents():
    return [
        {"id": 1, "user_id": 7, "name": "Algèbre", "category_id": None, "created_at": "2026-01-02T10:00:00"},
        {"id": 2, "user_id": 8, "name": "Biologie", "category_id": 3, "created_at": "2026-01-03T10:00:00"},
    ]


@pytest.mark.anyio
async def test_document_grid_drops_item_after_confirmed_delete():
    def handler(request):
        if request.method == "GET":
            return httpx.Response(200, json=_documents())
        return httpx.Response(200, json={"document_id": 1, "deleted": True, "file_removed": True,
                                         "history_logged": False, "warnings": ["Historique non enregistré"]})

    toasts = ToastQueue()
    async with _api(handler) as api:
        grid = DocumentGrid(api, toasts, user_id=7)
        assert [d["id"] for d in await grid.load()] == [2, 1]
        assert await grid.delete(1) is True

    assert [d["id"] for d in grid.visible()] == [2]
    assert [t.kind for t in toasts.toasts] == [ToastKind.success, ToastKind.info]


@pytest.mark.anyio
async def test_document_grid_keeps_item_when_delete_fails():
    def handler(request):
        if request.method == "GET":
            return httpx.Response(200, json=_documents())
        return _envelope(403, "Only the owner can delete this document")

    toasts = ToastQueue()
    async with _api(handler) as api:
        grid = DocumentGrid(api, toasts, user_id=7)
        await grid.load()
        assert await grid.delete(2) is False

    assert {d["id"] for d in grid.visible()} == {1, 2}
    assert toasts.toasts[-1].kind is ToastKind.error
    assert toasts.toasts[-1].title == "La suppression a échoué"


@pytest.mark.anyio
async def test_document_grid_filters_and_sort():
    async with _api(lambda request: httpx.Response(200, json=_documents())) as api:
        grid = DocumentGrid(api, ToastQueue(), user_id=7)
        await grid.load()
        assert [d["id"] for d in grid.set_filters(ownership="mine")] == [1]
        grid.set_filters(ownership="all")
        assert [d["id"] for d in grid.toggle_sort_order()] == [1, 2]
        assert [d["id"] for d in grid.set_filters(search="bio")] == [2]


@pytest.mark.anyio
async def test_category_grid_delete_needs_confirmation():
    calls = []

    def handler(request):
        calls.append(request.method)
        if request.method == "GET":
            return httpx.Response(200, json=[{"id": 3, "name": "Maths", "document_count": 0}])
        return httpx.Response(200, json={"category_id": 3, "detached_documents": 0})

    toasts = ToastQueue()
    async with _api(handler) as api:
        grid = CategoryGrid(api, toasts)
        await grid.load()
        assert await grid.delete(3, confirmed=False) is False
        assert calls == ["GET"]
        assert await grid.delete(3) is True

    assert grid.categories == []
    assert toasts.toasts[-1].title == "Catégorie supprimée"


def test_guard_redirects():
    assert guard("/documents", None).redirect_to == "/login"
    assert guard("/landing", None).allowed
    assert guard("/nowhere", "eleve").redirect_to == "/404"
    assert guard("/teacher", "eleve").redirect_to == "/"
    assert guard("/teacher", "enseignant").allowed
    assert guard("/exercises", "eleve").allowed
    assert guard("/documents/12", "eleve").allowed
    assert guard("/documents?search=x", "eleve").route.name == "Documents"


def test_nav_items_depend_on_audience():
    student_paths = {r.path for r in nav_items("eleve")}
    teacher_paths = {r.path for r in nav_items("enseignant")}
    assert "/teacher" not in student_paths
    assert {"/exercises", "/control", "/course"} <= student_paths
    assert {"/teacher", "/exercises", "/control"} <= teacher_paths
    assert nav_items(None) == []
