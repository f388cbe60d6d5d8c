"""
AI functions with the provider replaced by a fake manager.
"""
from app import app
from core.exceptions import AIServiceException
from services.ai_manager import get_ai_manager
from services.summary_service import parse_keywords, truncate_input


def test_summarize_returns_summary_and_keywords(client, student, fake_ai):
    fake_ai.answers = ["Le texte explique les fractions.", "fractions, Nombres, fractions, division"]
    response = client.post(
        "/functions/summarize-document",
        json={"documentText": "Une fraction représente une partie d'un tout."},
        headers=student["headers"],
    )
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["summary"] == "Le texte explique les fractions."
    assert body["keywords"] == ["fractions", "Nombres", "division"]
    assert body["provider"] == "OpenAI"
    assert body["truncated"] is False
    assert len(fake_ai.calls) == 2
    assert "Une fraction représente" in fake_ai.calls[0]["prompt"]


def test_summarize_rejects_empty_text(client, student, fake_ai):
    response = client.post("/functions/summarize-document", json={"documentText": "   "}, headers=student["headers"])
    assert response.status_code == 400
    assert fake_ai.calls == []


def test_summarize_requires_sign_in(client, fake_ai):
    response = client.post("/functions/summarize-document", json={"documentText": "texte"})
    assert response.status_code == 401


def test_truncation_and_keyword_parsing():
    text, truncated = truncate_input("a" * 25, 20)
    assert truncated and text == "a" * 20 + "..."
    assert truncate_input("court", 20) == ("court", False)
    assert len(parse_keywords(", ".join(f"mot{i}" for i in range(15)))) == 10


def test_generate_exercises_from_text_saves_document_and_xp(client, student, fake_ai):
    fake_ai.answers = ["### Exercice 1\nCalculer 1/2 + 1/4"]
    response = client.post(
        "/functions/generate-exercises",
        json={
            "inputMode": "text",
            "courseText": "Les fractions permettent de représenter des parts égales d'une unité.",
            "level": "facile",
            "format": "mixte",
            "numQuestions": 3,
        },
        headers=student["headers"],
    )
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["inputMode"] == "text"
    assert body["source"] == "cours"
    assert body["sourceValue"] == "Les fractions permettent de représenter des parts ..."
    assert body["xp_gained"] == 15
    assert body["document"]["name"] == "Exercices - facile"
    assert "3 exercices" in fake_ai.calls[0]["prompt"]

    assert client.get("/xp/me", headers=student["headers"]).json()["xp"] == 15
    history = client.get("/history", headers=student["headers"]).json()
    assert history[0]["action_type"] == "generate_exercises"


def test_generate_exercises_from_document(client, student, fake_ai):
    document = client.post(
        "/documents", json={"name": "Cours de géométrie", "content": "Un triangle a trois côtés."},
        headers=student["headers"],
    ).json()
    response = client.post(
        "/functions/generate-exercises",
        json={"inputMode": "document", "documentId": document["id"]},
        headers=student["headers"],
    )
    assert response.status_code == 200, response.text
    assert response.json()["sourceValue"] == "Cours de géométrie"
    assert "Un triangle a trois côtés." in fake_ai.calls[0]["prompt"]


def test_generate_exercises_missing_subject(client, student, fake_ai):
    response = client.post(
        "/functions/generate-exercises", json={"inputMode": "subject"}, headers=student["headers"]
    )
    assert response.status_code == 400
    assert fake_ai.calls == []


def test_generate_evaluation_returns_html(client, student, fake_ai):
    fake_ai.answers = ["## Évaluation\n**Question 1** : définir un nombre premier."]
    response = client.post(
        "/functions/generate-evaluation",
        json={"sujet": "Nombres premiers", "classe": "4e", "specialite": "aucune", "difficulte": "moyenne"},
        headers=student["headers"],
    )
    assert response.status_code == 200, response.text
    body = response.json()
    assert "<h2>Évaluation</h2>" in body["html"]
    assert "<strong>Question 1</strong>" in body["html"]
    assert fake_ai.calls[0]["model"] == "gpt-3.5-turbo"


def test_generate_control_persists_and_shows_on_dashboard(client, teacher, fake_ai):
    fake_ai.answers = ["# Contrôle\nQuestion 1 (2 points)"]
    response = client.post(
        "/functions/generate-control",
        json={"topic": "Fractions", "level": "5e", "quantity": 6},
        headers=teacher["headers"],
    )
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["document"]["name"] == "Contrôle - Fractions (5e)"
    assert body["xp_gained"] == 40
    assert "<h1>Contrôle</h1>" in body["html"]
    prompt = fake_ai.calls[0]["prompt"]
    assert "Au moins 2 question(s)" in prompt
    assert "Au moins 1 exercice(s)" in prompt

    dashboard = client.get("/teacher/dashboard", headers=teacher["headers"]).json()
    assert dashboard["stats"]["total_documents"] == 1
    assert dashboard["stats"]["shared_documents"] == 0
    assert dashboard["stats"]["latest_document"]["id"] == body["document"]["id"]


class _FailingAI:
    async def generate_text(self, *args, **kwargs):
        raise AIServiceException(detail="quota exceeded", provider="OpenAI")


def test_provider_failure_saves_nothing(client, teacher):
    app.dependency_overrides[get_ai_manager] = lambda: _FailingAI()
    try:
        response = client.post(
            "/functions/generate-control", json={"topic": "Optique", "level": "1re"}, headers=teacher["headers"]
        )
    finally:
        app.dependency_overrides.pop(get_ai_manager, None)

    assert response.status_code == 503
    assert client.get("/documents", headers=teacher["headers"]).json() == []
    assert client.get("/xp/me", headers=teacher["headers"]).json()["xp"] == 0


def test_summary_prompt_depends_on_role(client, student, teacher, fake_ai):
    for account in (student, teacher):
        client.post(
            "/functions/summarize-document", json={"documentText": "La Révolution française."},
            headers=account["headers"],
        )
    student_call, teacher_call = fake_ai.calls[0], fake_ai.calls[2]
    assert "tuteur pédagogique" in student_call["system_instruction"]
    assert "exemples concrets" in student_call["prompt"]
    assert "enseignants" in teacher_call["system_instruction"]
    assert "distribué aux élèves" in teacher_call["prompt"]


def test_exercise_prompt_and_sources_depend_on_role(client, student, teacher, fake_ai):
    shared = client.post(
        "/documents", json={"name": "Cours partagé", "content": "Les volcans."}, headers=student["headers"]
    ).json()
    client.post(f"/documents/{shared['id']}/share", headers=student["headers"])

    response = client.post(
        "/functions/generate-exercises", json={"inputMode": "subject", "subject": "Volcans"},
        headers=student["headers"],
    )
    assert response.status_code == 200
    assert "Format accessible" in fake_ai.calls[-1]["prompt"]

    response = client.post(
        "/functions/generate-exercises", json={"inputMode": "subject", "subject": "Volcans"},
        headers=teacher["headers"],
    )
    assert "Format professionnel" in fake_ai.calls[-1]["prompt"]

    # teachers generate from their own documents only
    response = client.post(
        "/functions/generate-exercises", json={"inputMode": "document", "documentId": shared["id"]},
        headers=teacher["headers"],
    )
    assert response.status_code == 403


def test_shared_document_usable_by_other_student(client, student, other_student, fake_ai):
    shared = client.post(
        "/documents", json={"name": "Fiche partagée", "content": "Le cycle de l'eau."}, headers=student["headers"]
    ).json()
    client.post(f"/documents/{shared['id']}/share", headers=student["headers"])
    response = client.post(
        "/functions/generate-exercises", json={"inputMode": "document", "documentId": shared["id"]},
        headers=other_student["headers"],
    )
    assert response.status_code == 200
    assert "Le cycle de l'eau." in fake_ai.calls[0]["prompt"]


def test_generate_course_saves_course_document(client, teacher, fake_ai):
    fake_ai.answers = ["# La photosynthèse\n## Définition\n- **Chlorophylle**\n- Lumière\nConclusion du cours"]
    response = client.post(
        "/functions/generate-course",
        json={"subject": "La photosynthèse", "courseLevel": "highschool", "courseStyle": "flashcards",
              "courseDuration": "5min"},
        headers=teacher["headers"],
    )
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["document"]["name"] == "Cours : La photosynthèse"
    assert body["courseLevel"] == "highschool"
    assert "<ul><li><strong>Chlorophylle</strong></li><li>Lumière</li></ul>" in body["html"]
    assert "<p>Conclusion du cours</p>" in body["html"]

    prompt = fake_ai.calls[0]["prompt"]
    assert "lycée (16-18 ans)" in prompt
    assert "fiches de révision avec points clés" in prompt
    assert "environ 5 minutes de lecture" in prompt

    dashboard = client.get("/teacher/dashboard", headers=teacher["headers"]).json()
    assert dashboard["stats"]["total_documents"] == 1
    history = client.get("/history", headers=teacher["headers"]).json()
    assert history[0]["action_type"] == "generate_course"
    assert client.get("/xp/me", headers=teacher["headers"]).json()["xp"] == 0


def test_generate_course_rejects_unknown_level(client, teacher, fake_ai):
    response = client.post(
        "/functions/generate-course", json={"subject": "Optique", "courseLevel": "maternelle"},
        headers=teacher["headers"],
    )
    assert response.status_code == 422
    assert fake_ai.calls == []
