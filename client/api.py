"""
Async HTTP client for the EduKeeper API.

Errors come back as ``ClientError`` carrying the API's error envelope
message, so callers can show it in a toast as is.
"""
from typing import Any, Dict, List, Optional

import httpx

from core.logging import get_logger

logger = get_logger("client")

DEFAULT_TIMEOUT = 60.0


class ClientError(Exception):
    """A failed API call (HTTP error status or transport failure)."""

    def __init__(self, message: str, status_code: Optional[int] = None, error_type: Optional[str] = None):
        self.message = message
        self.status_code = status_code
        self.error_type = error_type
        super().__init__(message)


def _error_from_response(response: httpx.Response) -> ClientError:
    try:
        body = response.json()
    except ValueError:
        body = None
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        return ClientError(error.get("message") or response.reason_phrase, response.status_code, error.get("type"))
    return ClientError(response.text or response.reason_phrase, response.status_code)


class EduKeeperClient:
    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.token = token
        self._client = httpx.AsyncClient(base_url=base_url, transport=transport, timeout=timeout)

    async def __aenter__(self) -> "EduKeeperClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    @property
    def authenticated(self) -> bool:
        return self.token is not None

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        headers = kwargs.pop("headers", {})
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        try:
            response = await self._client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("API request failed", method=method, url=url, error=str(e))
            raise ClientError(f"Erreur réseau : {e}") from e
        if response.is_error:
            raise _error_from_response(response)
        return response

    async def _json(self, method: str, url: str, **kwargs) -> Any:
        return (await self._request(method, url, **kwargs)).json()

    # --- auth ---

    async def register(self, email: str, password: str, role: str = "eleve", **profile) -> Dict[str, Any]:
        return await self._json("POST", "/auth/register", json={"email": email, "password": password, "role": role, **profile})

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        data = await self._json("POST", "/auth/login", json={"email": email, "password": password})
        self.token = data["access_token"]
        return data

    async def logout(self) -> None:
        try:
            await self._request("POST", "/auth/logout")
        finally:
            self.token = None

    async def session(self) -> Optional[Dict[str, Any]]:
        """Current user, or None when signed out or the session expired."""
        if not self.token:
            return None
        try:
            return (await self._json("GET", "/auth/session"))["user"]
        except ClientError as e:
            if e.status_code == 401:
                return None
            raise

    async def profile(self) -> Dict[str, Any]:
        return await self._json("GET", "/users/me")

    async def update_profile(self, **fields) -> Dict[str, Any]:
        return await self._json("PUT", "/users/me", json=fields)

    async def skins(self) -> List[Dict[str, Any]]:
        return await self._json("GET", "/users/me/skins")

    async def select_skin(self, skin: str) -> Dict[str, Any]:
        return await self._json("PUT", "/users/me/skin", json={"skin": skin})

    # --- documents ---

    async def list_documents(self, **filters) -> List[Dict[str, Any]]:
        params = {k: (v.value if hasattr(v, "value") else v) for k, v in filters.items() if v is not None}
        return await self._json("GET", "/documents", params=params)

    async def latest_document(self) -> Optional[Dict[str, Any]]:
        return await self._json("GET", "/documents/latest")

    async def get_document(self, document_id: int) -> Dict[str, Any]:
        return await self._json("GET", f"/documents/{document_id}")

    async def upload_document(
        self, filename: str, content: bytes, content_type: str = "application/octet-stream",
        name: Optional[str] = None, category_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        data = {}
        if name:
            data["name"] = name
        if category_id is not None:
            data["category_id"] = str(category_id)
        files = {"file": (filename, content, content_type)}
        return await self._json("POST", "/documents/upload", data=data, files=files)

    async def save_summary(self, summary: str, source_name: Optional[str] = None, **extra) -> Dict[str, Any]:
        return await self._json("POST", "/documents/summary", json={"summary": summary, "source_name": source_name, **extra})

    async def share_document(self, document_id: int) -> Dict[str, Any]:
        return await self._json("POST", f"/documents/{document_id}/share")

    async def delete_document(self, document_id: int) -> Dict[str, Any]:
        return await self._json("DELETE", f"/documents/{document_id}")

    async def export_pdf(self, document_id: int) -> bytes:
        return (await self._request("GET", f"/documents/{document_id}/export.pdf")).content

    # --- categories ---

    async def list_categories(self) -> List[Dict[str, Any]]:
        return await self._json("GET", "/categories")

    async def get_category(self, category_id: int) -> Dict[str, Any]:
        return await self._json("GET", f"/categories/{category_id}")

    async def create_category(self, name: str) -> Dict[str, Any]:
        return await self._json("POST", "/categories", json={"name": name})

    async def delete_category(self, category_id: int) -> Dict[str, Any]:
        return await self._json("DELETE", f"/categories/{category_id}")

    # --- xp and history ---

    async def get_xp(self) -> Dict[str, Any]:
        return await self._json("GET", "/xp/me")

    async def award_xp(self, action: str, document_name: Optional[str] = None) -> Dict[str, Any]:
        return await self._json("POST", "/xp/award", json={"action": action, "document_name": document_name})

    async def history(self, limit: int = 100) -> List[Dict[str, Any]]:
        return await self._json("GET", "/history", params={"limit": limit})

    async def monthly_credits(self) -> Dict[str, Any]:
        return await self._json("GET", "/history/credits")

    async def teacher_dashboard(self) -> Dict[str, Any]:
        return await self._json("GET", "/teacher/dashboard")

    # --- AI functions ---

    async def summarize(self, document_text: str) -> Dict[str, Any]:
        """Summarize text; empty input is refused here without calling the server."""
        if not document_text or not document_text.strip():
            raise ClientError("Veuillez saisir un texte à résumer", status_code=None, error_type="validation_error")
        return await self._json("POST", "/functions/summarize-document", json={"documentText": document_text})

    async def generate_exercises(self, **params) -> Dict[str, Any]:
        return await self._json("POST", "/functions/generate-exercises", json=params)

    async def generate_evaluation(self, sujet: str, classe: str, difficulte: str, specialite: Optional[str] = None):
        payload = {"sujet": sujet, "classe": classe, "difficulte": difficulte, "specialite": specialite}
        return await self._json("POST", "/functions/generate-evaluation", json=payload)

    async def generate_control(self, topic: str, level: str, quantity: int = 5) -> Dict[str, Any]:
        payload = {"topic": topic, "level": level, "quantity": quantity}
        return await self._json("POST", "/functions/generate-control", json=payload)

    async def generate_course(
        self, subject: str, level: str = "college", style: str = "detailed", duration: str = "15min"
    ) -> Dict[str, Any]:
        payload = {"subject": subject, "courseLevel": level, "courseStyle": style, "courseDuration": duration}
        return await self._json("POST", "/functions/generate-course", json=payload)

    # --- billing ---

    async def check_subscription(self) -> Dict[str, Any]:
        return await self._json("POST", "/functions/check-subscription")

    async def create_checkout(self, origin: Optional[str] = None) -> str:
        return (await self._json("POST", "/functions/create-checkout", json={"origin": origin}))["url"]

    async def customer_portal(self, origin: Optional[str] = None) -> str:
        return (await self._json("POST", "/functions/customer-portal", json={"origin": origin}))["url"]

    async def send_subscription_interest(
        self, message: str, email: Optional[str] = None, name: Optional[str] = None
    ) -> Dict[str, Any]:
        payload = {"message": message, "email": email, "name": name}
        return await self._json("POST", "/functions/send-subscription-interest", json=payload)
