from typing import Any, Dict, List, Optional

class Note:
    """Represents a single note. ``content`` is always in storage (markup) form."""

    def __init__(self, id: str, user_id: str, title: str, content: str,
                 created_time: str, updated_time: str,
                 attachments: Optional[List[str]] = None):
        self.id = id
        self.user_id = user_id
        self.title = title
        self.content = content
        self.attachments = list(attachments or [])
        self.created_time = created_time
        self.updated_time = updated_time

    def to_dict(self) -> Dict[str, Any]:
        """Convert note to dictionary representation."""
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "attachments": list(self.attachments),
            "created_time": self.created_time,
            "updated_time": self.updated_time
        }

class AuthError(Exception):
    """Custom exception for authentication errors."""
    pass

class NoteNotFound(Exception):
    """Raised when a note does not exist or belongs to another user."""

    def __init__(self, note_id: str):
        super().__init__("Note not found")
        self.note_id = note_id
