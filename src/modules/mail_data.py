"""
Mail Data Model
Contains the part-tree node, task type enum and ParsedEmail record
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple


class TaskType(str, Enum):
    """Closed set of task categories, in classification priority order"""
    INTERVIEW = "interview"
    TEST = "test"
    CALL_LETTER = "call_letter"
    SHORTLIST = "shortlist"
    OTHER = "other"


@dataclass(frozen=True)
class PartNode:
    """
    One node of a message payload tree

    A node either carries inline Base64url data, has child parts, or both
    (top-level inline data always wins when decoding).
    """
    mime_type: str = ""
    data: Optional[str] = None
    filename: str = ""
    children: Tuple["PartNode", ...] = ()

    @property
    def has_inline_data(self) -> bool:
        return bool(self.data)

    @property
    def is_multipart(self) -> bool:
        return bool(self.children)

    @classmethod
    def from_payload(cls, payload: Any) -> "PartNode":
        """
        Build a node tree from a provider payload mapping

        Missing or mistyped keys degrade to empty values instead of raising.
        """
        if not isinstance(payload, Mapping):
            return cls()

        body = payload.get("body")
        data = body.get("data") if isinstance(body, Mapping) else None
        if not isinstance(data, str):
            data = None

        raw_parts = payload.get("parts")
        children: Tuple[PartNode, ...] = ()
        if isinstance(raw_parts, list):
            children = tuple(cls.from_payload(part) for part in raw_parts)

        return cls(
            mime_type=str(payload.get("mimeType") or ""),
            data=data,
            filename=str(payload.get("filename") or ""),
            children=children,
        )


@dataclass(frozen=True)
class ParsedEmail:
    """
    Structured record derived from one raw provider message

    Instances are immutable; rule evaluation only reads them.
    """
    id: str
    subject: str
    sender: str
    snippet: str
    date: Optional[datetime]
    body: str
    type: TaskType
    institution: str
    event_date: Optional[date] = None
    recipient: str = ""
    has_attachments: bool = False
    labels: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def date_iso(self) -> Optional[str]:
        """ISO-8601 received timestamp with millisecond precision and Z suffix"""
        if self.date is None:
            return None
        stamp = self.date.astimezone(timezone.utc).isoformat(timespec="milliseconds")
        return stamp.replace("+00:00", "Z")

    def to_dict(self) -> Dict[str, Any]:
        """Serialise to the camelCase shape consumed by display layers"""
        return {
            "id": self.id,
            "subject": self.subject,
            "sender": self.sender,
            "recipient": self.recipient,
            "snippet": self.snippet,
            "date": self.date_iso,
            "body": self.body,
            "eventDate": self.event_date.isoformat() if self.event_date else None,
            "type": self.type.value,
            "institution": self.institution,
            "hasAttachments": self.has_attachments,
            "labels": list(self.labels),
        }
