"""
Sign-up, sign-in, sessions and the role guard.
"""
from conftest import register_and_login, unique_email


def test_register_and_login(client):
    account = register_and_login(client, "eleve")
    user = account["user"]
    assert user["role"] == "eleve"
    assert user["audience"] == "student"
    assert user["xp"] == 0
    assert user["level"] == 1
    assert user["skin"] == "base"
    assert "password_hash" not in user


def test_duplicate_email_rejected(client):
    email = unique_email()
    payload = {"email": email, "password": "testpass123"}
    assert client.post("/auth/register", json=payload).status_code == 201
    response = client.post("/auth/register", json=payload)
    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Email already registered"


def test_admin_role_cannot_be_self_assigned(client):
    response = client.post(
        "/auth/register", json={"email": unique_email(), "password": "testpass123", "role": "admin"}
    )
    assert response.status_code == 400


def test_wrong_password(client, student):
    response = client.post("/auth/login", json={"email": student["email"], "password": "wrong-password"})
    assert response.status_code == 401
    assert response.json()["error"]["type"] == "AuthenticationException"


def test_missing_token_uses_error_envelope(client):
    response = client.get("/auth/session")
    assert response.status_code == 401
    error = response.json()["error"]
    assert error["status_code"] == 401
    assert error["message"] == "Missing authorization header"


def test_session_and_logout(client, student):
    response = client.get("/auth/session", headers=student["headers"])
    assert response.status_code == 200
    assert response.json()["user"]["email"] == student["email"]

    assert client.post("/auth/logout", headers=student["headers"]).status_code == 200
    assert client.get("/auth/session", headers=student["headers"]).status_code == 401


def test_teacher_role_maps_to_teacher_audience(client, teacher):
    assert teacher["user"]["audience"] == "teacher"


def test_teacher_dashboard_forbidden_for_students(client, student):
    response = client.get("/teacher/dashboard", headers=student["headers"])
    assert response.status_code == 403
    assert response.json()["error"]["message"] == "Cette page est réservée aux enseignants."


def test_profile_update(client, student):
    response = client.put(
        "/users/me",
        json={"first_name": "Léa", "birth_date": "2010-05-04", "school_grade": "3e"},
        headers=student["headers"],
    )
    assert response.status_code == 200
    body = response.json()
    assert body["first_name"] == "Léa"
    assert body["birth_date"] == "2010-05-04"
    assert body["school_grade"] == "3e"
    assert body["display_name"] == "Léa Eleve"


def test_skins_locked_until_level(client, student):
    skins = client.get("/users/me/skins", headers=student["headers"]).json()
    state = {s["id"]: (s["unlocked"], s["active"]) for s in skins}
    assert state["base"] == (True, True)
    assert state["avance"] == (False, False)

    response = client.put("/users/me/skin", json={"skin": "avance"}, headers=student["headers"])
    assert response.status_code == 403

    response = client.put("/users/me/skin", json={"skin": "licorne"}, headers=student["headers"])
    assert response.status_code == 400
