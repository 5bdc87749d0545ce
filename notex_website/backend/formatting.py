"""
Inline formatting codec for note content.

Notes are edited as plain text with two inline markers, ``**bold**`` and
``==highlight==`` (the *edit form*), and persisted as the same text with
``<strong>`` and ``<mark>`` wrappers (the *storage form*). The storage form is
what the API stores and what the browser displays; the edit form only exists
inside the editor.

Both directions are plain pattern substitutions:

- Pairs match non-greedily: the first closing marker after an opening marker
  ends the span.
- A span never crosses a line terminator (LF, CR, U+2028 or U+2029).
- Unpaired markers are left alone. Nothing here raises.

Literal ``**`` or ``==`` typed as ordinary text is read as a marker; there is
no escape syntax.
"""

import html
import re

BOLD_MARKER = "**"
HIGHLIGHT_MARKER = "=="

# Like JS ".", a span stops at any line terminator.
_SPAN = r"([^\n\r\u2028\u2029]*?)"

_BOLD_SPAN = re.compile(r"\*\*" + _SPAN + r"\*\*")
_HIGHLIGHT_SPAN = re.compile("==" + _SPAN + "==")

_STRONG_ELEMENT = re.compile("<strong>" + _SPAN + "</strong>")
_MARK_ELEMENT = re.compile("<mark>" + _SPAN + "</mark>")

# Matched against already-escaped text, so only these two tags can come back.
_ESCAPED_STRONG = re.compile("&lt;strong&gt;" + _SPAN + "&lt;/strong&gt;")
_ESCAPED_MARK = re.compile("&lt;mark&gt;" + _SPAN + "&lt;/mark&gt;")

def encode_to_markup(text: str) -> str:
    """
    Convert edit-form text to storage form.

    >>> encode_to_markup("a **bold** word")
    'a <strong>bold</strong> word'
    >>> encode_to_markup("unbalanced **text")
    'unbalanced **text'
    """
    text = _BOLD_SPAN.sub(r"<strong>\1</strong>", text)
    return _HIGHLIGHT_SPAN.sub(r"<mark>\1</mark>", text)

def decode_to_plain_text(markup: str) -> str:
    """
    Convert storage-form markup back to edit form.

    Exactly inverts :func:`encode_to_markup` on its own output. Any other
    markup is passed through as-is.
    """
    markup = _STRONG_ELEMENT.sub(BOLD_MARKER + r"\1" + BOLD_MARKER, markup)
    return _MARK_ELEMENT.sub(HIGHLIGHT_MARKER + r"\1" + HIGHLIGHT_MARKER, markup)

def render_markup(markup: str) -> str:
    """
    Render storage-form content as safe HTML.

    Everything is escaped first; afterwards only paired ``<strong>`` and
    ``<mark>`` wrappers are turned back into elements. A stored ``<script>``
    comes out as visible text.
    """
    escaped = html.escape(markup)
    escaped = _ESCAPED_STRONG.sub(r"<strong>\1</strong>", escaped)
    return _ESCAPED_MARK.sub(r"<mark>\1</mark>", escaped)

def strip_markup(markup: str) -> str:
    """Return the visible text of storage-form content, wrappers removed."""
    markup = _STRONG_ELEMENT.sub(r"\1", markup)
    return _MARK_ELEMENT.sub(r"\1", markup)
