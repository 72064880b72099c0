"""
Rule Matching Module
User-defined rules and the predicates that evaluate them against ParsedEmail

PATTERN RECOGNITION: Criteria are compiled into a small tagged expression,
an ordered AND of clauses, instead of being re-interpreted from strings on
every call. The only OR form is a list of alternatives for a single field
("call letter OR admit card"). When that clause holds, evaluation stops and
the rule matches without checking later clauses.

All predicates here are pure: they read a ParsedEmail and a Rule and return
a bool. Malformed or contradictory criteria are never rejected; the clause
order below decides the outcome.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .mail_data import ParsedEmail


OR_SEPARATOR = " OR "

# Storage keys (camelCase, as persisted) -> RuleCriteria attribute names
_CRITERIA_KEYS = (
    ("from", "from_"),
    ("to", "to"),
    ("subject", "subject"),
    ("includes", "includes"),
    ("excludes", "excludes"),
    ("excludeFrom", "exclude_from"),
)


def _blank_to_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value)
    return text if text.strip() else None


@dataclass(frozen=True)
class RuleCriteria:
    """Optional matching fields; an empty criteria set matches everything"""
    from_: Optional[str] = None
    to: Optional[str] = None
    subject: Optional[str] = None
    includes: Optional[str] = None
    excludes: Optional[str] = None
    exclude_from: Optional[str] = None
    has_attachment: Optional[bool] = None

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "RuleCriteria":
        if not isinstance(data, Mapping):
            return cls()
        values: Dict[str, Any] = {
            attr: _blank_to_none(data.get(key)) for key, attr in _CRITERIA_KEYS
        }
        has_attachment = data.get("hasAttachment")
        values["has_attachment"] = has_attachment if isinstance(has_attachment, bool) else None
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        """Serialise using storage keys, omitting absent fields"""
        result: Dict[str, Any] = {}
        for key, attr in _CRITERIA_KEYS:
            value = getattr(self, attr)
            if value is not None:
                result[key] = value
        if self.has_attachment is not None:
            result["hasAttachment"] = self.has_attachment
        return result


@dataclass(frozen=True)
class Rule:
    """A user-owned tagging/filtering rule"""
    id: str
    tag: str
    description: str = ""
    color: str = ""
    is_active: bool = True
    criteria: RuleCriteria = field(default_factory=RuleCriteria)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Rule":
        """Build a rule from its stored form, tolerating missing keys"""
        return cls(
            id=str(data.get("id") or ""),
            tag=str(data.get("tag") or ""),
            description=str(data.get("description") or ""),
            color=str(data.get("color") or ""),
            is_active=bool(data.get("isActive", True)),
            criteria=RuleCriteria.from_dict(data.get("criteria")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "description": self.description,
            "tag": self.tag,
            "color": self.color,
            "criteria": self.criteria.to_dict(),
            "isActive": self.is_active,
        }


# ---------------------------------------------------------------------------
# Clauses
# ---------------------------------------------------------------------------

def _field_text(email: ParsedEmail, field_name: str) -> str:
    if field_name == "subject_body":
        return f"{email.subject} {email.body}"
    return getattr(email, field_name) or ""


@dataclass(frozen=True)
class Contains:
    """Case-insensitive substring of one email field"""
    field_name: str
    needle: str
    decisive: bool = False

    def holds(self, email: ParsedEmail) -> bool:
        return self.needle.lower() in _field_text(email, self.field_name).lower()


@dataclass(frozen=True)
class ContainsAny:
    """Any of several substrings in one field; a hit settles the whole rule"""
    field_name: str
    alternatives: Tuple[str, ...]
    decisive: bool = True

    def holds(self, email: ParsedEmail) -> bool:
        text = _field_text(email, self.field_name).lower()
        return any(alternative in text for alternative in self.alternatives)


@dataclass(frozen=True)
class AttachmentIs:
    expected: bool
    decisive: bool = False

    def holds(self, email: ParsedEmail) -> bool:
        return email.has_attachments == self.expected


Clause = Union[Contains, ContainsAny, AttachmentIs]


def _subject_clause(subject: str) -> Clause:
    if OR_SEPARATOR in subject:
        alternatives = tuple(part.lower() for part in subject.split(OR_SEPARATOR))
        return ContainsAny("subject", alternatives)
    return Contains("subject", subject)


def compile_criteria(criteria: RuleCriteria) -> Tuple[Clause, ...]:
    """
    Compile criteria into ordered clauses

    Order: from, to, subject, includes, has_attachment. Absent fields
    produce no clause.
    """
    clauses: List[Clause] = []
    if criteria.from_:
        clauses.append(Contains("sender", criteria.from_))
    if criteria.to:
        clauses.append(Contains("recipient", criteria.to))
    if criteria.subject:
        clauses.append(_subject_clause(criteria.subject))
    if criteria.includes:
        clauses.append(Contains("subject_body", criteria.includes))
    if criteria.has_attachment is not None:
        clauses.append(AttachmentIs(criteria.has_attachment))
    return tuple(clauses)


def evaluate(email: ParsedEmail, clauses: Iterable[Clause]) -> bool:
    for clause in clauses:
        if not clause.holds(email):
            return False
        if clause.decisive:
            return True
    return True


def matches(email: ParsedEmail, rule: Rule) -> bool:
    """
    True when every specified criterion of the rule holds for the email

    Exclusion fields (excludes, exclude_from) are not part of matching;
    see is_excluded.
    """
    return evaluate(email, compile_criteria(rule.criteria))


def is_excluded(email: ParsedEmail, rule: Rule) -> bool:
    """
    True when an active rule's exclusion criteria hit the email

    exclude_from is checked against the sender, excludes against
    subject + body. Other criteria of the rule play no part.
    """
    if not rule.is_active:
        return False
    criteria = rule.criteria
    if criteria.exclude_from and Contains("sender", criteria.exclude_from).holds(email):
        return True
    if criteria.excludes and Contains("subject_body", criteria.excludes).holds(email):
        return True
    return False


def apply_exclusions(
    emails: Iterable[ParsedEmail], rules: Iterable[Rule]
) -> Tuple[List[ParsedEmail], List[ParsedEmail]]:
    """
    Split emails into (kept, excluded), preserving input order

    Only active rules that carry an exclusion field take part.
    """
    exclusion_rules = [
        rule for rule in rules
        if rule.is_active and (rule.criteria.exclude_from or rule.criteria.excludes)
    ]
    kept: List[ParsedEmail] = []
    excluded: List[ParsedEmail] = []
    for email in emails:
        if any(is_excluded(email, rule) for rule in exclusion_rules):
            excluded.append(email)
        else:
            kept.append(email)
    return kept, excluded


def count_tags(emails: Iterable[ParsedEmail], rules: Iterable[Rule]) -> Dict[str, int]:
    """
    Number of emails matched by each active rule, keyed by tag

    Rules sharing a tag add up. Keys follow rule order; an active rule
    with no matches still appears with 0. Pure exclusion rules (only
    exclude_from/excludes set) are filters, not tags, and are skipped.
    """
    emails = list(emails)
    counts: Dict[str, int] = {}
    for rule in rules:
        if not rule.is_active:
            continue
        clauses = compile_criteria(rule.criteria)
        if not clauses and (rule.criteria.exclude_from or rule.criteria.excludes):
            continue
        hits = sum(1 for email in emails if evaluate(email, clauses))
        counts[rule.tag] = counts.get(rule.tag, 0) + hits
    return counts


DEFAULT_RULES: Tuple[Rule, ...] = (
    Rule(
        id="1",
        description='Subject or Body contains "interview"',
        tag="interview",
        color="bg-orange-soft",
        criteria=RuleCriteria(includes="interview"),
    ),
    Rule(
        id="2",
        description='Subject contains "call letter" or "admit card"',
        tag="call_letter",
        color="bg-green-soft",
        criteria=RuleCriteria(subject="call letter OR admit card"),
    ),
    Rule(
        id="3",
        description='Subject contains "test" or "assessment"',
        tag="test",
        color="bg-red-soft",
        criteria=RuleCriteria(subject="test OR assessment"),
    ),
    Rule(
        id="4",
        description='Subject contains "shortlist"',
        tag="shortlist",
        color="bg-blue-soft",
        criteria=RuleCriteria(subject="shortlist"),
    ),
)
