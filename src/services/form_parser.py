"""Request body parsing for guestbook submissions.

Submissions arrive either URL-encoded or as multipart/form-data. The
multipart path is a text-pattern extraction that only handles short text
fields: no binary content, no nested parts.
"""

import re
from urllib.parse import parse_qsl


_BOUNDARY_PARAM = re.compile(r'boundary="?([^";]+)"?', re.IGNORECASE)
_PART_NAME = re.compile(r'content-disposition:[^\r\n]*?\bname="([^"]*)"', re.IGNORECASE)


def _decode(body: bytes) -> str:
    return body.decode("utf-8", errors="replace")


def _find_boundary(text: str, content_type: str) -> str | None:
    match = _BOUNDARY_PARAM.search(content_type)
    if match:
        return match.group(1).strip()
    # Sniff the boundary from the first delimiter line of the body
    first_line = text.lstrip("\r\n").split("\n", 1)[0].strip()
    if first_line.startswith("--") and len(first_line) > 2:
        return first_line[2:]
    return None


def parse_urlencoded(body: bytes) -> dict[str, str]:
    """Parse application/x-www-form-urlencoded text; first value wins."""
    fields: dict[str, str] = {}
    for key, value in parse_qsl(_decode(body), keep_blank_values=True):
        fields.setdefault(key, value)
    return fields


def parse_multipart_text(body: bytes, content_type: str = "") -> dict[str, str]:
    """Extract text field values from a multipart/form-data body.

    Each field's value is the text between the blank line ending its header
    block and the next boundary marker.
    """
    text = _decode(body)
    boundary = _find_boundary(text, content_type)
    if not boundary:
        return {}

    fields: dict[str, str] = {}
    for part in text.split(f"--{boundary}"):
        if part.startswith("--"):
            # closing delimiter
            break
        name_match = _PART_NAME.search(part)
        if not name_match:
            continue
        header_end = re.search(r"\r?\n\r?\n", part)
        if header_end is None:
            continue
        value = part[header_end.end():]
        if value.endswith("\r\n"):
            value = value[:-2]
        elif value.endswith("\n"):
            value = value[:-1]
        fields.setdefault(name_match.group(1), value)
    return fields


def parse_form_fields(body: bytes, content_type: str | None) -> dict[str, str]:
    """Parse a form submission regardless of its encoding.

    Args:
        body: Raw request body
        content_type: Value of the Content-Type header, if any

    Returns:
        Mapping of field name to text value. Malformed bodies yield an
        empty or partial mapping rather than an error.
    """
    content_type = content_type or ""
    if "multipart/form-data" in content_type.lower():
        return parse_multipart_text(body, content_type)
    return parse_urlencoded(body)
