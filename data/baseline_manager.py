import json
import os
import re
import tempfile
from dataclasses import dataclass
from typing import Dict, Optional

from models.rules import RuleRecord

HASH_PATTERN = re.compile(r'^[0-9a-fA-F]{64}$')

# Last-known hash of one flagged rule
@dataclass(frozen=True)
class BaselineEntry:
    mailbox: str
    rule_id: str
    hash: str

# mailbox -> rule_id -> entry; a missing mailbox had no flagged rules last run
Baseline = Dict[str, Dict[str, BaselineEntry]]


class BaselineError(ValueError):
    """Raised when the baseline file does not match the expected schema."""


def snapshot_to_baseline(snapshot: Dict[str, Dict[str, RuleRecord]]) -> Baseline:
    """Converts a run snapshot into baseline entries, dropping mailboxes without rules."""
    return {
        mailbox: {
            rule_id: BaselineEntry(mailbox=mailbox, rule_id=rule_id, hash=record.content_hash)
            for rule_id, record in rules.items()
        }
        for mailbox, rules in snapshot.items()
        if rules
    }


def baseline_to_json(baseline: Baseline) -> Dict[str, Dict[str, Dict[str, str]]]:
    return {
        mailbox: {rule_id: {'ID': entry.rule_id, 'HASH': entry.hash} for rule_id, entry in sorted(rules.items())}
        for mailbox, rules in sorted(baseline.items())
    }


def baseline_from_json(data) -> Baseline:
    """Validates the decoded JSON document and builds typed baseline entries."""
    if not isinstance(data, dict):
        raise BaselineError("Baseline must be a JSON object keyed by mailbox")

    baseline: Baseline = {}
    for mailbox, rules in data.items():
        if not isinstance(rules, dict):
            raise BaselineError(f"Rules of mailbox '{mailbox}' must be a JSON object")
        entries = {}
        for rule_id, item in rules.items():
            if not isinstance(item, dict):
                raise BaselineError(f"Entry '{rule_id}' of '{mailbox}' must be a JSON object")
            stored_id = item.get('ID')
            stored_hash = item.get('HASH')
            if stored_id != rule_id:
                raise BaselineError(f"Entry '{rule_id}' of '{mailbox}' has mismatched ID {stored_id!r}")
            if not isinstance(stored_hash, str) or not HASH_PATTERN.fullmatch(stored_hash):
                raise BaselineError(f"Entry '{rule_id}' of '{mailbox}' has an invalid HASH")
            entries[rule_id] = BaselineEntry(mailbox=mailbox, rule_id=rule_id, hash=stored_hash.lower())
        if entries:
            baseline[mailbox] = entries
    return baseline


class BaselineManager:
    def __init__(self, file_path='rule_baseline.json'):
        self.file_path = file_path

    def exists(self) -> bool:
        return os.path.exists(self.file_path)

    def load(self) -> Optional[Baseline]:
        """
        Reads the last-known baseline. Returns None when the file is missing,
        unreadable or fails validation, which forces a full scan.
        """
        if not self.exists():
            print(f"No baseline found at {self.file_path}; running a full scan.")
            return None

        try:
            with open(self.file_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            baseline = baseline_from_json(data)
        except (OSError, ValueError) as e:
            # json.JSONDecodeError and BaselineError are both ValueErrors
            print(f"Error reading baseline {self.file_path}: {e}. Running a full scan.")
            return None

        rule_count = sum(len(rules) for rules in baseline.values())
        print(f"Loaded baseline with {rule_count} rule(s) across {len(baseline)} mailbox(es).")
        return baseline

    def save(self, snapshot: Dict[str, Dict[str, RuleRecord]]):
        """Replaces the baseline file with the full run snapshot in one atomic step."""
        document = baseline_to_json(snapshot_to_baseline(snapshot))
        directory = os.path.dirname(os.path.abspath(self.file_path))
        fd, tmp_path = tempfile.mkstemp(prefix='.baseline-', suffix='.tmp', dir=directory)
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(document, f, indent=2, sort_keys=True)
            os.replace(tmp_path, self.file_path)
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def reset(self) -> bool:
        """Deletes the baseline file. Returns False if there was nothing to delete."""
        if not self.exists():
            return False
        os.remove(self.file_path)
        return True
