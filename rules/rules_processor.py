from typing import Dict, Iterable, List, Optional, Tuple

from models.rules import (
    DEFAULT_DISPLAY_FIELDS,
    ClassifiedRule,
    MailboxSection,
    Report,
    RuleRecord,
    RuleStatus,
)
from data.baseline_manager import Baseline, BaselineEntry
from rules.fingerprint import build_rule_record

# mailbox -> rule_id -> record, only flagged rules of mailboxes read successfully
RunSnapshot = Dict[str, Dict[str, RuleRecord]]


def classify_rule(record: RuleRecord, mailbox_baseline: Optional[Dict[str, BaselineEntry]], full_scan: bool) -> RuleStatus:
    """
    Compares one flagged rule against its mailbox's baseline entries.
    In full-scan mode every flagged rule is New, regardless of history.
    """
    if full_scan:
        return RuleStatus.NEW
    entry = (mailbox_baseline or {}).get(record.rule_id)
    if entry is None:
        return RuleStatus.NEW
    if entry.hash != record.content_hash:
        return RuleStatus.MODIFIED
    return RuleStatus.UNCHANGED


def _sort_key(classified: ClassifiedRule):
    priority = classified.record.priority
    return (priority is None, priority or 0, classified.record.rule_id)


class RuleProcessor:
    def __init__(self, rule_source, baseline: Optional[Baseline] = None, check_now: bool = False,
                 display_fields: Iterable[str] = DEFAULT_DISPLAY_FIELDS, verbose: bool = False):
        # A missing (or unreadable) baseline always forces a full scan
        self.rule_source = rule_source
        self.baseline: Baseline = baseline or {}
        self.full_scan = check_now or baseline is None
        self.display_fields = tuple(display_fields)
        self.verbose = verbose
        self.snapshot: RunSnapshot = {}
        self.failed_mailboxes: List[str] = []

    def _fetch_records(self, mailbox: str) -> Optional[List[RuleRecord]]:
        """Reads the mailbox's rules from the rule source. Returns None if the fetch failed."""
        try:
            source_rules = self.rule_source.list_rules(mailbox)
        except Exception as e:
            print(f"Failed to read rules for {mailbox}: {e}")
            return None
        return [build_rule_record(mailbox, rule, self.display_fields) for rule in source_rules]

    def process_mailbox(self, mailbox: str) -> Tuple[ClassifiedRule, ...]:
        """
        Classifies the flagged rules of one mailbox and records them in the snapshot.
        Returns only the rules selected for the report (New or Modified).
        """
        records = self._fetch_records(mailbox)
        if records is None:
            self.failed_mailboxes.append(mailbox)
            return ()

        mailbox_baseline = self.baseline.get(mailbox)
        included = []
        for record in records:
            if not record.is_flagged:
                continue

            # The snapshot keeps every flagged rule so the next baseline has the newest hashes
            self.snapshot.setdefault(mailbox, {})[record.rule_id] = record

            status = classify_rule(record, mailbox_baseline, self.full_scan)
            if self.verbose:
                print(f"  {mailbox} rule {record.rule_id}: {status.value}")
            if status is not RuleStatus.UNCHANGED:
                included.append(ClassifiedRule(record=record, status=status))

        return tuple(sorted(included, key=_sort_key))

    def process_mailboxes(self, mailboxes: Iterable[str]) -> Report:
        """Main loop: classify every mailbox independently and assemble the report."""
        mode = "full scan" if self.full_scan else "incremental"
        ordered = sorted(set(mailboxes), key=str.lower)
        print(f"\n--- Checking rules of {len(ordered)} mailboxes ({mode}) ---")

        sections = []
        for mailbox in ordered:
            included = self.process_mailbox(mailbox)
            if included:
                print(f"{mailbox}: {len(included)} rule(s) to report")
                sections.append(MailboxSection(mailbox=mailbox, rules=included))

        return Report(
            full_scan=self.full_scan,
            sections=tuple(sections),
            failed_mailboxes=tuple(self.failed_mailboxes),
        )
