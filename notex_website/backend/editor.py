from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Union

from .formatting import (
    BOLD_MARKER,
    HIGHLIGHT_MARKER,
    decode_to_plain_text,
    encode_to_markup,
)

class Marker(str, Enum):
    """Inline marker kinds offered by the editor toolbar."""
    BOLD = BOLD_MARKER
    HIGHLIGHT = HIGHLIGHT_MARKER

class MarkerEdit(NamedTuple):
    """New edit-form text and the selection that still brackets the wrapped content."""
    text: str
    start: int
    end: int

def _clamp_selection(text: str, start: int, end: int):
    start = max(0, min(start, len(text)))
    end = max(0, min(end, len(text)))
    if start > end:
        start, end = end, start
    return start, end

def apply_marker(text: str, start: int, end: int, marker: Union[Marker, str]) -> MarkerEdit:
    """
    Wrap ``text[start:end]`` in a marker pair.

    An empty selection returns the input unchanged. Applying the same marker
    twice nests it (``****word****``); there is no toggling.

    Args:
        text (str): Full edit-form text
        start (int): Selection start offset (characters)
        end (int): Selection end offset (characters)
        marker (Marker | str): ``Marker.BOLD``/``"**"`` or ``Marker.HIGHLIGHT``/``"=="``

    Raises:
        ValueError: If ``marker`` is not one of the two marker kinds

    Returns:
        MarkerEdit: New text and the shifted selection

    Examples:
        >>> apply_marker("hello world", 6, 11, "**")
        MarkerEdit(text='hello **world**', start=8, end=13)
    """
    # Unknown marker kinds are rejected even for an empty selection.
    marker = Marker(marker).value
    start, end = _clamp_selection(text, start, end)
    if start == end:
        return MarkerEdit(text, start, end)

    wrapped = marker + text[start:end] + marker
    new_text = text[:start] + wrapped + text[end:]
    return MarkerEdit(new_text, start + len(marker), end + len(marker))

def apply_bold(text: str, start: int, end: int) -> MarkerEdit:
    return apply_marker(text, start, end, Marker.BOLD)

def apply_highlight(text: str, start: int, end: int) -> MarkerEdit:
    return apply_marker(text, start, end, Marker.HIGHLIGHT)

@dataclass
class EditorDraft:
    """
    A note as it sits in the editor, with content in edit form.

    Conversion happens only at the edges: :meth:`from_note` decodes stored
    content, :meth:`to_payload` encodes it for saving.
    """
    title: str = ""
    content: str = ""
    attachments: List[str] = field(default_factory=list)

    @classmethod
    def from_note(cls, note: Dict[str, Any]) -> "EditorDraft":
        return cls(
            title=note.get("title", ""),
            content=decode_to_plain_text(note.get("content", "")),
            attachments=list(note.get("attachments") or []),
        )

    def apply(self, start: int, end: int, marker: Union[Marker, str]) -> MarkerEdit:
        """Apply a marker to the draft's content and return the new selection."""
        edit = apply_marker(self.content, start, end, marker)
        self.content = edit.text
        return edit

    def attach(self, *names: str) -> None:
        # Only file names are kept; uploads are not handled.
        self.attachments.extend(names)

    def append_transcript(self, transcript: str) -> None:
        """Append dictated text, separated from existing content by one space."""
        if not transcript:
            return
        self.content = f"{self.content} {transcript}" if self.content else transcript

    def validate(self) -> None:
        if not self.title.strip() or not self.content.strip():
            raise ValueError("Title and content are required")

    def to_payload(self) -> Dict[str, Any]:
        """Return the JSON body for create/update requests, content in storage form."""
        return {
            "title": self.title,
            "content": encode_to_markup(self.content),
            "attachments": list(self.attachments),
        }
