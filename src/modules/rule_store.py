"""
Rule Store Module
Persists user rules in a small JSON key-value file

The matcher only needs an ordered list of rules; this module owns their
lifecycle (seed, edit, delete) on disk.
"""

import json
import logging
import os
import tempfile
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .rules import DEFAULT_RULES, Rule


class RuleStoreError(Exception):
    """Raised when the rule file cannot be read or written"""


class JSONKeyValueStore:
    """
    Key-value store backed by one JSON object file

    MAINTENANCE WISDOM: Writes go to a temp file in the same directory and
    are swapped in with os.replace, so a crash mid-write never leaves a
    half-written rules file behind.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.logger = logging.getLogger("JSONKeyValueStore")

    def _read_all(self) -> Dict[str, Any]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as exc:
            raise RuleStoreError(f"Unable to read {self.path}: {exc}") from exc

        if not raw.strip():
            return {}

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise RuleStoreError(f"Invalid JSON in {self.path}: {exc}") from exc

        if not isinstance(data, dict):
            raise RuleStoreError(f"{self.path} must contain a JSON object")
        return data

    def _write_all(self, data: Dict[str, Any]) -> None:
        payload = json.dumps(data, indent=2, ensure_ascii=False) + "\n"
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=str(self.path.parent), prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(payload)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise RuleStoreError(f"Unable to write {self.path}: {exc}") from exc

    def get(self, key: str, default: Any = None) -> Any:
        return self._read_all().get(key, default)

    def set(self, key: str, value: Any) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def delete(self, key: str) -> None:
        data = self._read_all()
        if key in data:
            del data[key]
            self._write_all(data)


class RuleStore:
    """Ordered collection of rules kept under one key of a key-value store"""

    def __init__(self, store: JSONKeyValueStore, key: str = "rules"):
        self.store = store
        self.key = key
        self.logger = logging.getLogger("RuleStore")

    def load(self) -> List[Rule]:
        """
        Return stored rules, seeding the standard set on first use

        Entries that are not JSON objects are skipped with a warning.
        """
        stored = self.store.get(self.key)
        if stored is None:
            self.logger.info(f"No rules stored under '{self.key}'; seeding {len(DEFAULT_RULES)} defaults")
            rules = list(DEFAULT_RULES)
            self.save(rules)
            return rules

        if not isinstance(stored, list):
            raise RuleStoreError(f"Stored '{self.key}' must be a JSON list")

        rules = []
        for index, entry in enumerate(stored):
            if not isinstance(entry, dict):
                self.logger.warning(f"Skipping malformed rule entry at index {index}")
                continue
            rules.append(Rule.from_dict(entry))
        return rules

    def active(self) -> List[Rule]:
        return [rule for rule in self.load() if rule.is_active]

    def save(self, rules: List[Rule]) -> None:
        self.store.set(self.key, [rule.to_dict() for rule in rules])

    def get(self, rule_id: str) -> Optional[Rule]:
        for rule in self.load():
            if rule.id == rule_id:
                return rule
        return None

    def upsert(self, rule: Rule) -> List[Rule]:
        """Replace the rule with the same id, or append it"""
        rules = self.load()
        for index, existing in enumerate(rules):
            if existing.id == rule.id:
                rules[index] = rule
                break
        else:
            rules.append(rule)
        self.save(rules)
        return rules

    def delete(self, rule_id: str) -> bool:
        """Remove a rule by id; returns False when no such rule exists"""
        rules = self.load()
        remaining = [rule for rule in rules if rule.id != rule_id]
        if len(remaining) == len(rules):
            return False
        self.save(remaining)
        return True

    def next_id(self) -> str:
        """One past the highest numeric rule id"""
        numeric = [int(rule.id) for rule in self.load() if rule.id.isdigit()]
        return str(max(numeric, default=0) + 1)

    def reset(self) -> None:
        """Forget stored rules; the defaults are seeded again on next load"""
        self.store.delete(self.key)

    def set_active(self, rule_id: str, active: bool) -> Optional[Rule]:
        """Toggle a rule on or off; returns the updated rule"""
        rule = self.get(rule_id)
        if rule is None:
            return None
        updated = replace(rule, is_active=active)
        self.upsert(updated)
        return updated
