"""
Category CRUD and the uncategorize-on-delete rule.
"""


def create(client, account, name):
    response = client.post("/categories", json={"name": name}, headers=account["headers"])
    assert response.status_code == 201, response.text
    return response.json()


def test_empty_category_carries_message(client, student):
    category = create(client, student, "Physique")
    detail = client.get(f"/categories/{category['id']}", headers=student["headers"]).json()
    assert detail["documents"] == []
    assert detail["document_count"] == 0
    assert detail["empty_message"] == "Aucun document disponible dans cette catégorie"


def test_list_counts_documents(client, student):
    filled = create(client, student, "Anglais")
    create(client, student, "Biologie")
    client.post(
        "/documents", json={"name": "Verbes", "content": "to be", "category_id": filled["id"]},
        headers=student["headers"],
    )
    categories = client.get("/categories", headers=student["headers"]).json()
    counts = {c["name"]: c["document_count"] for c in categories}
    assert counts == {"Anglais": 1, "Biologie": 0}
    assert [c["name"] for c in categories] == ["Anglais", "Biologie"]

    detail = client.get(f"/categories/{filled['id']}", headers=student["headers"]).json()
    assert detail["empty_message"] is None
    assert [d["name"] for d in detail["documents"]] == ["Verbes"]


def test_delete_detaches_documents(client, student):
    category = create(client, student, "Chimie")
    document = client.post(
        "/documents", json={"name": "Atomes", "content": "Protons", "category_id": category["id"]},
        headers=student["headers"],
    ).json()

    response = client.delete(f"/categories/{category['id']}", headers=student["headers"])
    assert response.status_code == 200
    assert response.json() == {"category_id": category["id"], "detached_documents": 1}

    kept = client.get(f"/documents/{document['id']}", headers=student["headers"])
    assert kept.status_code == 200
    assert kept.json()["category_id"] is None
    assert client.get(f"/categories/{category['id']}", headers=student["headers"]).status_code == 404


def test_rename_and_blank_name(client, student):
    category = create(client, student, "Géo")
    response = client.put(f"/categories/{category['id']}", json={"name": "Géographie"}, headers=student["headers"])
    assert response.json()["name"] == "Géographie"

    response = client.post("/categories", json={"name": "   "}, headers=student["headers"])
    assert response.status_code == 400


def test_categories_are_private(client, student, other_student):
    category = create(client, student, "Secret")
    assert client.get(f"/categories/{category['id']}", headers=other_student["headers"]).status_code == 404
    assert client.delete(f"/categories/{category['id']}", headers=other_student["headers"]).status_code == 404
