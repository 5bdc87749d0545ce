"""
HTTP client for the NoteX API.

The login token lives in an explicit :class:`Session` held by the client,
created by :meth:`NotesClient.login` and dropped on :meth:`NotesClient.logout`
or the first 401 the server returns.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from .backend.editor import EditorDraft

logger = logging.getLogger(__name__)

class NotesApiError(Exception):
    """A request failed; carries the HTTP status and the server's message."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message

class SessionExpired(NotesApiError):
    """The server rejected the session token; the client has logged out."""

class NotLoggedIn(Exception):
    pass

@dataclass(frozen=True)
class Session:
    token: str
    user: str

    @property
    def headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}

class NotesClient:
    """
    Synchronous client for the notes API.

    Args:
        base_url (str): API root, e.g. ``http://localhost:8000``
        http (httpx.Client): Preconfigured client to use instead of creating one
    """

    def __init__(self, base_url: str = "http://localhost:8000",
                 http: Optional[httpx.Client] = None):
        self.http = http if http is not None else httpx.Client(base_url=base_url)
        self.session: Optional[Session] = None

    def close(self) -> None:
        self.http.close()

    def __enter__(self) -> "NotesClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    @staticmethod
    def _message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text
        if isinstance(body, dict):
            return str(body.get("detail") or body.get("message") or body)
        return str(body)

    def _send(self, method: str, path: str, authenticated: bool = True, **kwargs) -> httpx.Response:
        if authenticated:
            if self.session is None:
                raise NotLoggedIn("Login required")
            kwargs["headers"] = self.session.headers
        response = self.http.request(method, path, **kwargs)
        if response.status_code == 401 and authenticated:
            logger.info("Session rejected by server, logging out")
            self.session = None
            raise SessionExpired(401, self._message(response))
        if response.is_error:
            raise NotesApiError(response.status_code, self._message(response))
        return response

    def _request(self, method: str, path: str, authenticated: bool = True, **kwargs) -> Dict[str, Any]:
        return self._send(method, path, authenticated=authenticated, **kwargs).json()

    # -------------------------------
    # Session lifecycle
    # -------------------------------

    def register(self, email: str, password: str) -> str:
        data = self._request("POST", "/api/auth/register", authenticated=False,
                             json={"email": email, "password": password})
        return data["user_id"]

    def login(self, email: str, password: str) -> Session:
        data = self._request("POST", "/api/auth/login", authenticated=False,
                             json={"email": email, "password": password})
        self.session = Session(token=data["token"], user=email)
        return self.session

    def logout(self) -> None:
        if self.session is None:
            return
        try:
            self._request("POST", "/api/auth/logout")
        finally:
            self.session = None

    # -------------------------------
    # Notes
    # -------------------------------

    def list_notes(self, query: Optional[str] = None) -> List[Dict[str, Any]]:
        params = {"q": query} if query else None
        return self._request("GET", "/api/notes", params=params)["notes"]

    def get_note(self, note_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/api/notes/{note_id}")["note"]

    def open_note(self, note_id: str) -> EditorDraft:
        """Load a note into an editor draft (content decoded to edit form)."""
        return EditorDraft.from_note(self.get_note(note_id))

    def render_note(self, note_id: str) -> str:
        return self._send("GET", f"/api/notes/{note_id}/html").text

    def save_note(self, draft: EditorDraft, note_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Create or update a note from a draft.

        Raises:
            ValueError: If the draft has a blank title or content
        """
        draft.validate()
        if note_id is None:
            data = self._request("POST", "/api/notes", json=draft.to_payload())
        else:
            data = self._request("PUT", f"/api/notes/{note_id}", json=draft.to_payload())
        return data["note"]

    def delete_note(self, note_id: str) -> None:
        self._request("DELETE", f"/api/notes/{note_id}")
