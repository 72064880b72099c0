"""
Email Classifier Module
Keyword classification, institution extraction and event-date extraction

PATTERN RECOGNITION: Both the keyword check and the date extraction are
ordered tables evaluated first-match-wins. Priority is part of the behaviour
(an "Interview and Test Schedule" mail is an interview), so the tables are
tuples rather than dicts.

MAINTENANCE WISDOM: Only subject + snippet are searched. The body is large
and noisy (footers, disclaimers, tracking links) and produces false hits.
"""

import logging
import re
from datetime import date
from typing import Optional, Pattern, Tuple

from .mail_data import TaskType


logger = logging.getLogger(__name__)

KEYWORD_TABLE: Tuple[Tuple[TaskType, Tuple[str, ...]], ...] = (
    (TaskType.INTERVIEW, ("interview", "pi", "personal interview", "gd", "group discussion")),
    (TaskType.TEST, ("test", "exam", "assessment", "aptitude")),
    (TaskType.CALL_LETTER, ("call letter", "admit card")),
    (TaskType.SHORTLIST, ("shortlist", "selected")),
)

UNKNOWN_INSTITUTION = "Unknown"

# "IIM Bangalore <admissions@iimb.ac.in>" or "\"IIM B\" <...>"
DISPLAY_NAME_PATTERN = re.compile(r'"?([^"<]+)"?\s*<.*>')

_MONTHS = r"(?P<month>jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*"

# 15 March 2024, 12th Feb 2024
DAY_FIRST_PATTERN = re.compile(
    r"\b(?P<day>\d{1,2})(?:st|nd|rd|th)?\s+" + _MONTHS + r"\s+(?P<year>\d{4})\b",
    re.IGNORECASE,
)

# Feb 12th 2024, March 15, 2024, Mar 15. 2024
MONTH_FIRST_PATTERN = re.compile(
    r"\b" + _MONTHS + r"\s+(?P<day>\d{1,2})(?:st|nd|rd|th|,)?\.?\s+(?P<year>\d{4})\b",
    re.IGNORECASE,
)

DATE_PATTERNS: Tuple[Pattern, ...] = (DAY_FIRST_PATTERN, MONTH_FIRST_PATTERN)

MONTH_NUMBERS = {
    name: number
    for number, name in enumerate(
        ("jan", "feb", "mar", "apr", "may", "jun",
         "jul", "aug", "sep", "oct", "nov", "dec"),
        start=1,
    )
}


def combined_text(subject: str, snippet: str) -> str:
    """Lowercased subject + snippet, the only text the heuristics search"""
    return f"{subject or ''} {snippet or ''}".lower()


def classify(subject: str, snippet: str) -> TaskType:
    """
    Map subject + snippet to exactly one task type

    Keyword sets are checked in KEYWORD_TABLE order with case-insensitive
    substring containment; the first set with a hit wins.
    """
    text = combined_text(subject, snippet)
    for task_type, keywords in KEYWORD_TABLE:
        if any(keyword in text for keyword in keywords):
            return task_type
    return TaskType.OTHER


def extract_institution(sender: str, subject: str) -> str:
    """
    Best-effort institution name

    1. Display name from the From header
    2. Subject prefix before the first colon ("IIMA: Interview..." -> "IIMA")
    3. The sender itself, then a fixed placeholder, so the result is never empty
    """
    sender = sender or ""
    subject = subject or ""

    match = DISPLAY_NAME_PATTERN.search(sender)
    if match and match.group(1).strip():
        return match.group(1).strip()

    prefix = subject.split(":", 1)[0].strip()
    if prefix:
        return prefix

    return sender.strip() or UNKNOWN_INSTITUTION


def _date_from_match(match: "re.Match") -> Optional[date]:
    month = MONTH_NUMBERS[match.group("month")[:3].lower()]
    try:
        return date(int(match.group("year")), month, int(match.group("day")))
    except ValueError:
        return None


def extract_event_date(text: str) -> Optional[date]:
    """
    Find the first written-English date in text

    Day-first is tried before month-first. A match that is not a real
    calendar date (e.g. "31 Feb 2024") is discarded and the next pattern
    family is tried. Only the first match of each family is considered.

    Returns:
        The event date, or None when nothing usable was found
    """
    if not text:
        return None

    for pattern in DATE_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        parsed = _date_from_match(match)
        if parsed is not None:
            return parsed
        logger.debug(f"Discarding invalid calendar date: {match.group(0)!r}")

    return None

