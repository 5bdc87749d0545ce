import contextlib
import json
import logging
import sqlite3
import threading
from typing import Dict, List, Optional

from .domain import AuthError, Note, NoteNotFound
from .formatting import strip_markup
from .utils import hash_password, make_id, strip_bearer, time_now

logger = logging.getLogger(__name__)

class AuthService:
    """
    Handles user registration, login and session validation with SQLite persistence.

    Users and sessions are cached in memory and written through to two tables,
    ``users`` and ``sessions``, so tokens survive a restart.
    """

    def __init__(self, db_path: str = "users.db"):
        self.db_path = db_path
        self.lock = threading.Lock()
        self._init_database()
        # {email: {id, password_hash}}
        self.users: Dict[str, Dict[str, str]] = {}
        # {token: user_id}
        self.active: Dict[str, str] = {}
        self._load_from_database()

    @contextlib.contextmanager
    def _get_db_connection(self):
        conn = sqlite3.connect(self.db_path, check_same_thread=False)
        try:
            yield conn
        finally:
            conn.close()

    def _init_database(self):
        with self._get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("""
            CREATE TABLE IF NOT EXISTS users (
                id TEXT PRIMARY KEY,
                email TEXT UNIQUE NOT NULL,
                password_hash TEXT NOT NULL,
                created_time TEXT NOT NULL
            )
            """)
            cursor.execute("""
            CREATE TABLE IF NOT EXISTS sessions (
                token TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                created_time TEXT NOT NULL,
                FOREIGN KEY (user_id) REFERENCES users (id)
            )
            """)
            conn.commit()

    def _load_from_database(self):
        with self._get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT id, email, password_hash FROM users")
            for user_id, email, password_hash in cursor.fetchall():
                self.users[email] = {"id": user_id, "password_hash": password_hash}
            cursor.execute("SELECT token, user_id FROM sessions")
            for token, user_id in cursor.fetchall():
                self.active[token] = user_id
        logger.info("Loaded %d users and %d sessions from %s",
                    len(self.users), len(self.active), self.db_path)

    def add_user(self, email: str, password: str) -> str:
        """
        Register a new user and return its ID.

        Raises:
            AuthError: If the email is already registered
        """
        with self.lock:
            if email in self.users:
                raise AuthError("User already exists")
            uid = make_id("usr")
            password_hash = hash_password(password)
            with self._get_db_connection() as conn:
                conn.execute(
                    "INSERT INTO users (id, email, password_hash, created_time) VALUES (?, ?, ?, ?)",
                    (uid, email, password_hash, time_now())
                )
                conn.commit()
            self.users[email] = {"id": uid, "password_hash": password_hash}
            logger.info("Registered user %s", uid)
            return uid

    def login(self, email: str, password: str) -> str:
        """
        Authenticate a user and return a new session token.

        Raises:
            AuthError: If the email is unknown or the password does not match
        """
        with self.lock:
            user = self.users.get(email)
            if not user or user["password_hash"] != hash_password(password):
                raise AuthError("Invalid credentials")
            token = make_id("sess")
            with self._get_db_connection() as conn:
                conn.execute(
                    "INSERT INTO sessions (token, user_id, created_time) VALUES (?, ?, ?)",
                    (token, user["id"], time_now())
                )
                conn.commit()
            self.active[token] = user["id"]
            return token

    def validate(self, token: str) -> str:
        """
        Validate a session token (bare or ``Bearer``-prefixed) and return the user ID.

        Raises:
            AuthError: If the token is missing or unknown
        """
        if not token:
            raise AuthError("Authorization token is required")
        token = strip_bearer(token)
        if token not in self.active:
            raise AuthError("Invalid or expired session token")
        return self.active[token]

    def logout(self, token: str) -> bool:
        """Drop a session. Returns False if it was not active."""
        with self.lock:
            token = strip_bearer(token)
            if token not in self.active:
                return False
            with self._get_db_connection() as conn:
                conn.execute("DELETE FROM sessions WHERE token = ?", (token,))
                conn.commit()
            del self.active[token]
            return True

class Storage:
    """
    Note record store backed by SQLite.

    Content is written and read back verbatim: the store never interprets
    markup or normalises whitespace, so what the editor encoded is exactly
    what it later decodes.
    """

    _COLUMNS = "id, user_id, title, content, created_time, updated_time, attachments"

    def __init__(self, db_path: str = "notes.db"):
        self.db_path = db_path
        self.lock = threading.Lock()
        self._create_table()

    @contextlib.contextmanager
    def _get_db_connection(self):
        conn = sqlite3.connect(self.db_path, check_same_thread=False)
        conn.execute('PRAGMA journal_mode=WAL;')
        conn.execute('PRAGMA foreign_keys=ON;')
        conn.execute('PRAGMA synchronous=FULL;')
        try:
            yield conn
        finally:
            conn.close()

    def _create_table(self):
        with self._get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("""
            CREATE TABLE IF NOT EXISTS notes (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                title TEXT NOT NULL,
                content TEXT NOT NULL,
                created_time TEXT NOT NULL,
                updated_time TEXT NOT NULL,
                attachments TEXT NOT NULL DEFAULT '[]'
            )
            """)
            cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_notes_user_id ON notes(user_id)
            """)
            cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_notes_updated_time ON notes(updated_time DESC)
            """)
            conn.commit()

    @staticmethod
    def _row_to_note(row) -> Note:
        note_id, user_id, title, content, created, updated, attachments = row
        return Note(note_id, user_id, title, content, created, updated,
                    attachments=json.loads(attachments))

    def save(self, user_id: str, note_id: Optional[str], title: str, content: str,
             attachments: Optional[List[str]] = None) -> Note:
        """
        Insert a new note (``note_id`` is None) or overwrite an existing one.

        An update keeps the original ``created_time``.

        Raises:
            NoteNotFound: If ``note_id`` is given but the user has no such note
        """
        now = time_now()
        with self.lock:
            with self._get_db_connection() as conn:
                try:
                    if note_id is None:
                        note = Note(make_id("note"), user_id, title, content, now, now,
                                    attachments=attachments)
                        conn.execute(
                            f"INSERT INTO notes ({self._COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
                            (note.id, note.user_id, note.title, note.content,
                             note.created_time, note.updated_time, json.dumps(note.attachments))
                        )
                        conn.commit()
                        logger.debug("Note created: %s", note.id)
                        return note

                    row = conn.execute(
                        "SELECT created_time FROM notes WHERE user_id=? AND id=?",
                        (user_id, note_id)
                    ).fetchone()
                    if row is None:
                        raise NoteNotFound(note_id)
                    note = Note(note_id, user_id, title, content, row[0], now,
                                attachments=attachments)
                    conn.execute(
                        "UPDATE notes SET title=?, content=?, attachments=?, updated_time=? "
                        "WHERE id=? AND user_id=?",
                        (note.title, note.content, json.dumps(note.attachments),
                         note.updated_time, note.id, note.user_id)
                    )
                    conn.commit()
                    logger.debug("Note updated: %s", note.id)
                    return note
                except sqlite3.Error:
                    conn.rollback()
                    logger.exception("Database error saving note for user %s", user_id)
                    raise

    def load(self, user_id: str, note_id: str) -> Note:
        """
        Fetch one of the user's notes.

        Raises:
            NoteNotFound: If the note is missing or belongs to someone else
        """
        with self._get_db_connection() as conn:
            row = conn.execute(
                f"SELECT {self._COLUMNS} FROM notes WHERE user_id=? AND id=?",
                (user_id, note_id)
            ).fetchone()
        if row is None:
            raise NoteNotFound(note_id)
        return self._row_to_note(row)

    def list_notes(self, user_id: str, query: Optional[str] = None) -> List[Note]:
        """
        Return the user's notes, most recently updated first.

        With ``query``, keep only notes whose title or visible text contains
        it, case-insensitively. A blank query returns everything.
        """
        with self._get_db_connection() as conn:
            rows = conn.execute(
                f"SELECT {self._COLUMNS} FROM notes WHERE user_id=? "
                "ORDER BY updated_time DESC, rowid DESC",
                (user_id,)
            ).fetchall()
        notes = [self._row_to_note(row) for row in rows]
        if query is None or not query.strip():
            return notes
        needle = query.lower()
        return [
            n for n in notes
            if needle in n.title.lower() or needle in strip_markup(n.content).lower()
        ]

    def delete_note(self, user_id: str, note_id: str) -> bool:
        """Delete a note. Returns False if the user has no such note."""
        with self.lock:
            with self._get_db_connection() as conn:
                cursor = conn.execute("DELETE FROM notes WHERE user_id=? AND id=?", (user_id, note_id))
                conn.commit()
                return cursor.rowcount > 0

class Notebook:
    """
    Note operations for an authenticated user.

    Sits between the route layer and :class:`Storage` and owns input checks.
    Content is passed through untouched.
    """

    def __init__(self, store: Storage):
        self.store = store

    def create_note(self, user_id: str, title: str, content: str,
                    attachments: Optional[List[str]] = None) -> Note:
        """
        Raises:
            ValueError: If title or content is blank
        """
        if not title.strip() or not content.strip():
            raise ValueError("Title and content are required")
        return self.store.save(user_id, None, title.strip(), content, attachments)

    def update_note(self, user_id: str, note_id: str, title: Optional[str] = None,
                    content: Optional[str] = None,
                    attachments: Optional[List[str]] = None) -> Note:
        """
        Update the fields that were supplied; blank title or content keeps the stored value.

        Raises:
            NoteNotFound: If the user has no such note
        """
        existing = self.store.load(user_id, note_id)
        new_title = title.strip() if title and title.strip() else existing.title
        new_content = content if content and content.strip() else existing.content
        new_attachments = existing.attachments if attachments is None else attachments
        return self.store.save(user_id, note_id, new_title, new_content, new_attachments)

    def get_note(self, user_id: str, note_id: str) -> Note:
        return self.store.load(user_id, note_id)

    def list_notes(self, user_id: str, query: Optional[str] = None) -> List[Note]:
        return self.store.list_notes(user_id, query)

    def delete_note(self, user_id: str, note_id: str) -> bool:
        return self.store.delete_note(user_id, note_id)
