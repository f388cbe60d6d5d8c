"""
Document upload, visibility, sharing, deletion and export.
"""
from pathlib import Path
from types import SimpleNamespace

import pytest
from reportlab.platypus import Paragraph
from sqlalchemy.exc import OperationalError

from core.exceptions import StorageException
from core.storage import LocalObjectStorage, get_storage
from models.models import Document
from services import pdf_export
from services.document_service import delete_document, summary_document_name


def upload(client, account, filename="notes.pdf", content=b"%PDF-1.4 notes", category_id=None, **form):
    data = dict(form)
    if category_id is not None:
        data["category_id"] = str(category_id)
    return client.post(
        "/documents/upload",
        files={"file": (filename, content, "application/pdf")},
        data=data,
        headers=account["headers"],
    )


def history_actions(client, account):
    return [entry["action_type"] for entry in client.get("/history", headers=account["headers"]).json()]


def test_upload_without_category_is_uncategorized(client, student):
    response = upload(client, student)
    assert response.status_code == 201, response.text
    document = response.json()
    assert document["category_id"] is None
    assert document["name"] == "notes.pdf"
    assert document["url"].startswith("http://localhost:8000/storage/documents/")
    assert document["is_owner"] is True

    category = client.post("/categories", json={"name": "Maths"}, headers=student["headers"]).json()
    all_ids = [d["id"] for d in client.get("/documents", headers=student["headers"]).json()]
    filtered = client.get(f"/documents?category_id={category['id']}", headers=student["headers"]).json()
    assert document["id"] in all_ids
    assert document["id"] not in [d["id"] for d in filtered]
    assert "import" in history_actions(client, student)


def test_stored_file_is_served(client, student):
    document = upload(client, student, content=b"%PDF-1.4 served").json()
    path = document["url"].replace("http://localhost:8000", "")
    response = client.get(path)
    assert response.status_code == 200
    assert response.content == b"%PDF-1.4 served"


def test_storage_only_serves_the_documents_bucket(client, tmp_path):
    trash = get_storage().root / ".trash"
    trash.mkdir(parents=True, exist_ok=True)
    (trash / "staged.pdf").write_bytes(b"staged")
    assert client.get("/storage/.trash/staged.pdf").status_code == 404
    assert client.get("/storage/other/staged.pdf").status_code == 404

    storage = LocalObjectStorage(root=str(tmp_path), public_base_url="http://test")
    for bucket in ("..", ".trash", "a/b", ""):
        with pytest.raises(StorageException):
            storage.exists(bucket, "x.pdf")


def test_blank_upload_name_falls_back_to_filename(client, student):
    response = upload(client, student, filename="cours.pdf", name="   ")
    assert response.status_code == 201
    assert response.json()["name"] == "cours.pdf"


def test_upload_rejects_unknown_type_and_empty_file(client, student):
    assert upload(client, student, filename="virus.exe").status_code == 400
    assert upload(client, student, content=b"").status_code == 400


def test_upload_into_foreign_category_is_rejected(client, student, other_student):
    category = client.post("/categories", json={"name": "Privé"}, headers=other_student["headers"]).json()
    assert upload(client, student, category_id=category["id"]).status_code == 404


def test_shared_documents_visible_to_others(client, teacher, student):
    document = upload(client, teacher, filename="cours.pdf").json()
    assert document["id"] not in [d["id"] for d in client.get("/documents", headers=student["headers"]).json()]
    assert client.get(f"/documents/{document['id']}", headers=student["headers"]).status_code == 404

    response = client.post(f"/documents/{document['id']}/share", headers=teacher["headers"])
    assert response.status_code == 200
    assert response.json()["is_shared"] is True
    assert "partage" in history_actions(client, teacher)

    shared = client.get("/documents?ownership=shared", headers=student["headers"]).json()
    assert document["id"] in [d["id"] for d in shared]
    assert client.get(f"/documents/{document['id']}", headers=student["headers"]).json()["is_owner"] is False


def test_only_owner_can_delete(client, teacher, student):
    document = upload(client, teacher).json()
    client.post(f"/documents/{document['id']}/share", headers=teacher["headers"])
    response = client.delete(f"/documents/{document['id']}", headers=student["headers"])
    assert response.status_code == 403


def test_delete_removes_row_file_and_logs_history(client, student):
    document = upload(client, student).json()
    stored = Path(get_storage().local_path("documents", document["url"].rsplit("/", 1)[1]))
    assert stored.is_file()

    response = client.delete(f"/documents/{document['id']}", headers=student["headers"])
    assert response.status_code == 200
    body = response.json()
    assert body == {
        "document_id": document["id"],
        "deleted": True,
        "file_removed": True,
        "history_logged": True,
        "warnings": [],
    }
    assert not stored.exists()
    assert client.get(f"/documents/{document['id']}", headers=student["headers"]).status_code == 404
    assert "suppression" in history_actions(client, student)


class _BrokenSession:
    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    def add(self, obj):
        pass

    async def commit(self):
        raise OperationalError("INSERT INTO history", {}, Exception("database is locked"))


def test_history_failure_does_not_fail_deletion(client, student, monkeypatch):
    document = upload(client, student).json()
    monkeypatch.setattr("services.history_service.AsyncSessionLocal", lambda: _BrokenSession())

    response = client.delete(f"/documents/{document['id']}", headers=student["headers"])
    assert response.status_code == 200
    assert response.json()["history_logged"] is False
    assert client.get(f"/documents/{document['id']}", headers=student["headers"]).status_code == 404


class _FailingDeleteSession:
    def __init__(self, document):
        self.document = document
        self.rolled_back = False

    async def get(self, model, pk):
        return self.document

    async def delete(self, obj):
        pass

    async def commit(self):
        raise OperationalError("DELETE FROM documents", {}, Exception("connection lost"))

    async def rollback(self):
        self.rolled_back = True


@pytest.mark.anyio
async def test_failed_row_delete_restores_file(tmp_path):
    storage = LocalObjectStorage(root=str(tmp_path), public_base_url="http://test")
    storage.upload("documents", "1_123.pdf", b"content")
    document = Document(id=7, user_id=1, name="notes.pdf", storage_bucket="documents", storage_path="1_123.pdf")
    db = _FailingDeleteSession(document)

    with pytest.raises(OperationalError):
        await delete_document(db, storage, SimpleNamespace(id=1), 7)

    assert db.rolled_back
    assert storage.read("documents", "1_123.pdf") == b"content"


def test_summary_saved_as_document(client, student):
    response = client.post(
        "/documents/summary",
        json={"summary": "Les fractions en bref.", "source_name": "Fractions", "source_text": "Texte complet"},
        headers=student["headers"],
    )
    assert response.status_code == 201
    document = response.json()
    assert document["name"] == "Résumé - Fractions"
    assert document["summary"] == "Les fractions en bref."
    assert "résumé" in history_actions(client, student)


def test_summary_name_without_source():
    from datetime import datetime
    assert summary_document_name(None, datetime(2026, 1, 31)) == "Résumé automatique - 31-01-2026"


def test_latest_document_and_content(client, student):
    assert client.get("/documents/latest", headers=student["headers"]).json() is None
    created = client.post(
        "/documents", json={"name": "Cours : Fractions", "content": "# Fractions\n\nUn tiers."},
        headers=student["headers"],
    ).json()
    latest = client.get("/documents/latest", headers=student["headers"]).json()
    assert latest["id"] == created["id"]

    content = client.get(f"/documents/{created['id']}/content", headers=student["headers"]).json()
    assert content["content"].startswith("# Fractions")
    assert content["is_html"] is False


def test_rename_and_move(client, student):
    category = client.post("/categories", json={"name": "Histoire"}, headers=student["headers"]).json()
    document = upload(client, student).json()
    response = client.put(
        f"/documents/{document['id']}",
        json={"name": "Révolution", "category_id": category["id"]},
        headers=student["headers"],
    )
    assert response.json()["name"] == "Révolution"
    assert response.json()["category_id"] == category["id"]

    response = client.put(f"/documents/{document['id']}", json={"clear_category": True}, headers=student["headers"])
    assert response.json()["category_id"] is None


def test_pdf_export(client, student):
    created = client.post(
        "/documents", json={"name": "Cours : Export", "content": "Premier paragraphe.\n\nSecond paragraphe."},
        headers=student["headers"],
    ).json()
    response = client.get(f"/documents/{created['id']}/export.pdf", headers=student["headers"])
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.content.startswith(b"%PDF")


def _captured_story(monkeypatch):
    captured = {}

    def fake_render(title, story, styles):
        captured["story"] = [p.getPlainText() for p in story if isinstance(p, Paragraph)]
        return b"%PDF-fake"

    monkeypatch.setattr(pdf_export, "_render", fake_render)
    return captured


def test_pdf_placeholders(monkeypatch):
    captured = _captured_story(monkeypatch)

    pdf_export.build_document_pdf("Vide", "   ")
    assert captured["story"] == [pdf_export.PLACEHOLDER_EMPTY]

    pdf_export.build_document_pdf("Énorme", "x" * pdf_export.settings.export_max_chars)
    assert captured["story"] == [pdf_export.PLACEHOLDER_TOO_LARGE]


def test_pdf_plain_text_split_on_blank_lines(monkeypatch):
    captured = _captured_story(monkeypatch)
    pdf_export.build_document_pdf("Texte", "Un.\n\nDeux.\n\n\nTrois.")
    assert captured["story"] == ["Un.", "Deux.", "Trois."]


def test_pdf_html_keeps_text_outside_blocks(monkeypatch):
    captured = _captured_story(monkeypatch)
    pdf_export.build_document_pdf(
        "Cours",
        "Introduction libre\n<h1>Chapitre 1</h1>\nLa photosynthèse produit du glucose.\n<ul><li>Lumière</li></ul>\nFin du cours",
    )
    assert captured["story"] == [
        "Introduction libre",
        "Chapitre 1",
        "La photosynthèse produit du glucose.",
        "• Lumière",
        "Fin du cours",
    ]
