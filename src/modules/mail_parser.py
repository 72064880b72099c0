"""
Mail Parser Module
Turns raw provider messages into immutable ParsedEmail records

PATTERN RECOGNITION: This follows the Parser pattern: unstructured provider
JSON goes in, a structured ParsedEmail comes out.

SECURITY STORY: Everything in a raw message is attacker-controlled. The
parser never raises on malformed input; each field degrades to an empty or
fallback value so a single hostile message cannot break a fetch cycle.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional, Tuple

from .body_decoder import extract_body, has_attachments
from .email_classifier import (
    classify,
    combined_text,
    extract_event_date,
    extract_institution,
)
from .mail_data import ParsedEmail, PartNode
from ..utils.metrics import Metrics
from ..utils.sanitization import sanitize_for_logging


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MailParser:
    """
    Parses raw provider messages into ParsedEmail objects

    MAINTENANCE WISDOM: Parsing is kept separate from the HTTP client so it
    can be tested with plain dict fixtures.
    """

    def __init__(
        self,
        missing_date_fallback_to_now: bool = True,
        clock: Callable[[], datetime] = _utc_now,
        metrics: Optional[Metrics] = None,
    ):
        """
        Initialize mail parser

        Args:
            missing_date_fallback_to_now: Use the processing time when a
                message has no usable internalDate; otherwise leave date None
            clock: Source of "now" for the fallback (injectable for tests)
            metrics: Optional shared metrics collector
        """
        self.missing_date_fallback_to_now = missing_date_fallback_to_now
        self.clock = clock
        self.metrics = metrics
        self.logger = logging.getLogger("MailParser")

    def parse_message(self, raw: Mapping[str, Any]) -> ParsedEmail:
        """
        Parse one raw message

        Args:
            raw: Provider message with id, snippet, internalDate, payload

        Returns:
            ParsedEmail (always; malformed input yields a degraded record)
        """
        if not isinstance(raw, Mapping):
            self.logger.warning(f"Ignoring non-mapping message of type {type(raw).__name__}")
            raw = {}

        message_id = str(raw.get("id") or "")
        safe_id = sanitize_for_logging(message_id)
        payload = raw.get("payload")
        snippet = raw.get("snippet")
        snippet = snippet if isinstance(snippet, str) else ""

        subject = self._get_header(payload, "Subject")
        sender = self._get_header(payload, "From")
        recipient = self._get_header(payload, "To")

        tree = PartNode.from_payload(payload)
        decoded = extract_body(tree)
        body = decoded or snippet
        if not decoded:
            self.logger.debug(f"No decodable body for message {safe_id}; using snippet")

        event_date = extract_event_date(combined_text(subject, snippet))
        task_type = classify(subject, snippet)

        parsed = ParsedEmail(
            id=message_id,
            subject=subject,
            sender=sender,
            recipient=recipient,
            snippet=snippet,
            date=self._extract_date(raw.get("internalDate"), safe_id),
            body=body,
            event_date=event_date,
            type=task_type,
            institution=extract_institution(sender, subject),
            has_attachments=has_attachments(tree),
            labels=self._extract_labels(raw.get("labelIds")),
        )

        self.logger.debug(
            f"Parsed message {safe_id} as {task_type.value}",
            extra={"extra_fields": {
                "email_id": message_id,
                "task_type": task_type.value,
                "has_event_date": event_date is not None,
            }},
        )

        if self.metrics is not None:
            self.metrics.record_parsed(
                task_type.value,
                body_fallback=not decoded,
                has_event_date=event_date is not None,
            )

        return parsed

    @staticmethod
    def _get_header(payload: Any, name: str) -> str:
        """
        Case-insensitive header lookup, first occurrence wins

        Returns:
            Header value, or "" if absent
        """
        if not isinstance(payload, Mapping):
            return ""
        headers = payload.get("headers")
        if not isinstance(headers, list):
            return ""

        wanted = name.lower()
        for header in headers:
            if not isinstance(header, Mapping):
                continue
            if str(header.get("name", "")).lower() == wanted:
                value = header.get("value")
                return value if isinstance(value, str) else ""
        return ""

    def _extract_date(self, internal_date: Any, safe_id: str) -> Optional[datetime]:
        """
        Convert internalDate (epoch milliseconds as a string) to a UTC datetime

        Falls back to the processing time, or None under the strict policy,
        when the value is missing or not a number.
        """
        if internal_date not in (None, ""):
            try:
                millis = int(str(internal_date).strip())
                return datetime.fromtimestamp(millis / 1000, tz=timezone.utc)
            except (ValueError, OverflowError, OSError):
                self.logger.warning(
                    f"Unparseable internalDate for message {safe_id}: "
                    f"{sanitize_for_logging(str(internal_date), 40)}"
                )

        if self.missing_date_fallback_to_now:
            return self.clock()
        return None

    @staticmethod
    def _extract_labels(label_ids: Any) -> Tuple[str, ...]:
        if not isinstance(label_ids, list):
            return ()
        return tuple(str(label) for label in label_ids)
