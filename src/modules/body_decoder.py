"""
Body Decoder Module
Turns a message payload tree into the best available body text

PATTERN RECOGNITION: This is a depth-first tree walk with a preference order.
HTML beats plain text because the display layer renders HTML; plain text is
only used when a level has no HTML leaf.

SECURITY STORY: Payloads come from third-party senders. Decoding failures
never propagate (they degrade to an empty string and the caller falls back
to the snippet), and the walk is depth-bounded so a pathological part tree
cannot exhaust the interpreter stack.
"""

import base64
import binascii
import logging
from typing import Optional

from .mail_data import PartNode


logger = logging.getLogger(__name__)

HTML_MIME_TYPE = "text/html"
PLAIN_MIME_TYPE = "text/plain"

# Search order for immediate children of a multipart node
PREFERRED_MIME_TYPES = (HTML_MIME_TYPE, PLAIN_MIME_TYPE)

MAX_PART_DEPTH = 50

_URLSAFE_TO_STANDARD = str.maketrans("-_", "+/")


def decode_base64url(data: Optional[str]) -> str:
    """
    Decode URL-safe Base64 data into UTF-8 text

    Args:
        data: Base64url string as delivered by the provider (padding optional)

    Returns:
        Decoded text, or "" if the data is empty, not valid Base64 or not
        valid UTF-8
    """
    if not data:
        return ""

    normalized = data.strip().translate(_URLSAFE_TO_STANDARD)
    normalized += "=" * (-len(normalized) % 4)
    try:
        raw = base64.b64decode(normalized, validate=True)
        return raw.decode("utf-8")
    except (binascii.Error, ValueError) as e:
        # UnicodeDecodeError is a ValueError subclass
        logger.warning(f"Failed to decode body data: {type(e).__name__}")
        return ""


def _find_child(node: PartNode, mime_type: str) -> Optional[PartNode]:
    """Return the first immediate child with exactly this MIME type"""
    for child in node.children:
        if child.mime_type == mime_type:
            return child
    return None


def extract_body(node: PartNode, depth: int = 0) -> str:
    """
    Find and decode the best text body in a part tree

    Order of precedence:
    1. Inline data on the node itself
    2. First ``text/html`` child carrying data
    3. First ``text/plain`` child carrying data
    4. Depth-first, left-to-right recursion into nested multipart children

    Args:
        node: Root (or subtree) of the payload
        depth: Current recursion depth

    Returns:
        Decoded text, or "" when nothing could be found
    """
    if node.has_inline_data:
        return decode_base64url(node.data)

    if not node.is_multipart:
        return ""

    for mime_type in PREFERRED_MIME_TYPES:
        child = _find_child(node, mime_type)
        if child is not None and child.has_inline_data:
            return decode_base64url(child.data)

    if depth >= MAX_PART_DEPTH:
        logger.warning(
            f"Part tree deeper than {MAX_PART_DEPTH} levels; skipping nested parts"
        )
        return ""

    for child in node.children:
        if child.is_multipart:
            nested = extract_body(child, depth + 1)
            if nested:
                return nested

    return ""


def has_attachments(node: PartNode, depth: int = 0) -> bool:
    """True when any part in the tree is a named file"""
    if node.filename:
        return True
    if depth >= MAX_PART_DEPTH:
        return False
    return any(has_attachments(child, depth + 1) for child in node.children)
