from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Tuple

# Display field name -> SourceRule attribute. Names follow the mail server's rule properties.
DISPLAY_FIELD_ATTRIBUTES = {
    "Identity": "rule_id",
    "Name": "name",
    "Description": "description",
    "Enabled": "enabled",
    "Priority": "priority",
    "DeleteMessage": "delete_message",
    "ForwardTo": "forward_to",
    "ForwardAsAttachmentTo": "forward_as_attachment_to",
    "SupportedByTask": "supported_by_task",
}
DESCRIPTION_FIELD = "Description"
SUPPORTED_FIELD = "SupportedByTask"
DEFAULT_DISPLAY_FIELDS = (
    "Name", "Description", "Enabled", "Priority", "DeleteMessage",
    "ForwardTo", "ForwardAsAttachmentTo", "SupportedByTask",
)

# Raw rule as returned by a rule source (e.g. a Gmail filter), before fingerprinting
@dataclass(frozen=True)
class SourceRule:
    rule_id: str
    name: str
    description: str                            # Human-readable condition text, action independent
    enabled: bool = True
    priority: Optional[int] = None
    delete_message: bool = False
    forward_to: Tuple[str, ...] = ()
    forward_as_attachment_to: Tuple[str, ...] = ()
    supported_by_task: bool = True              # False means client-side rule

# One mail rule as observed in a scan, keyed by mailbox + rule_id
@dataclass(frozen=True)
class RuleRecord:
    mailbox: str
    rule_id: str
    is_flagged: bool
    condition_text: str
    properties: Tuple[Tuple[str, Any], ...]     # (display field, value) in configured order
    content_hash: str
    priority: Optional[int] = None

    def get(self, field: str, default: Any = None) -> Any:
        for name, value in self.properties:
            if name == field:
                return value
        return default


class RuleStatus(Enum):
    NEW = "New"
    MODIFIED = "Modified"
    UNCHANGED = "Unchanged"

# A flagged rule tagged with its change status against the baseline
@dataclass(frozen=True)
class ClassifiedRule:
    record: RuleRecord
    status: RuleStatus

    @property
    def mailbox(self) -> str:
        return self.record.mailbox

    @property
    def is_modified(self) -> bool:
        return self.status is RuleStatus.MODIFIED

# Rules of a single mailbox selected for the report
@dataclass(frozen=True)
class MailboxSection:
    mailbox: str
    rules: Tuple[ClassifiedRule, ...]

# The whole run's findings, sections sorted by mailbox address
@dataclass(frozen=True)
class Report:
    full_scan: bool
    sections: Tuple[MailboxSection, ...] = ()
    failed_mailboxes: Tuple[str, ...] = ()

    @property
    def rule_count(self) -> int:
        return sum(len(section.rules) for section in self.sections)

    @property
    def is_empty(self) -> bool:
        return self.rule_count == 0
