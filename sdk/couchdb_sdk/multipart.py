"""
Multipart response decoding.

GET /{db}/{docid} with Accept: multipart/related returns the JSON document
as the first part followed by one part per attachment marked "follows".
With open_revs the server answers multipart/mixed, one nested
multipart/related (or application/json) part per revision.

The body is parsed with the email package's HTTP policy, which handles
boundaries, part headers and nested multiparts.
"""

from __future__ import annotations

import json
from email import policy
from email.message import Message
from email.parser import BytesParser
from typing import Any

from .errors import MultipartError
from .models import MultipartPart


def _parse(content_type: str, payload: bytes) -> Message:
    preamble = f"Content-Type: {content_type}\r\nMIME-Version: 1.0\r\n\r\n".encode()
    return BytesParser(policy=policy.HTTP).parsebytes(preamble + payload)


def _part(message: Message) -> MultipartPart:
    headers = {key.lower(): str(value) for key, value in message.items()}
    content = message.get_payload(decode=True)
    return MultipartPart(headers=headers, content=content or b"")


def _load_json(part: MultipartPart, content_type: str) -> dict[str, Any]:
    try:
        data = json.loads(part.content)
    except ValueError as e:
        raise MultipartError(f"First part is not JSON: {e}", content_type=content_type) from e
    if not isinstance(data, dict):
        raise MultipartError("First part is not a JSON object", content_type=content_type)
    return data


def parse_related(
    content_type: str, payload: bytes
) -> tuple[dict[str, Any], tuple[MultipartPart, ...]]:
    """Split a multipart/related document body.

    Returns:
        Tuple of (document JSON, attachment parts in order)

    Raises:
        MultipartError: Not multipart, or the first part is not a JSON object
    """
    message = _parse(content_type, payload)
    if not message.is_multipart():
        raise MultipartError("Response is not multipart", content_type=content_type)

    parts = [_part(sub) for sub in message.iter_parts()]
    if not parts:
        raise MultipartError("Multipart response has no parts", content_type=content_type)

    return _load_json(parts[0], content_type), tuple(parts[1:])


def parse_mixed(
    content_type: str, payload: bytes
) -> list[tuple[dict[str, Any], tuple[MultipartPart, ...]]]:
    """Split a multipart/mixed open_revs body into one entry per revision.

    Revisions without attachments arrive as plain application/json parts;
    missing revisions arrive as {"missing": rev} objects and are returned
    as such.
    """
    message = _parse(content_type, payload)
    if not message.is_multipart():
        raise MultipartError("Response is not multipart", content_type=content_type)

    revisions = []
    for sub in message.iter_parts():
        if sub.is_multipart():
            parts = [_part(inner) for inner in sub.iter_parts()]
            if not parts:
                raise MultipartError("Empty revision part", content_type=content_type)
            revisions.append((_load_json(parts[0], content_type), tuple(parts[1:])))
        else:
            revisions.append((_load_json(_part(sub), content_type), ()))
    return revisions
