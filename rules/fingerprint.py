import hashlib
from typing import Any, Iterable, Optional, Tuple

from models.rules import DISPLAY_FIELD_ATTRIBUTES, DEFAULT_DISPLAY_FIELDS, RuleRecord, SourceRule


def normalize_condition_text(text: Optional[str]) -> str:
    """Terminates every condition line with a single '\\n'.

    Line order and the text of each line are kept as-is, so only
    line-ending differences (CRLF, CR, LF, missing final newline) are
    normalized away.
    """
    if not text:
        return ""
    return "".join(line + "\n" for line in text.splitlines())


def compute_content_hash(text: Optional[str]) -> str:
    """SHA-256 hex digest of the normalized condition text."""
    normalized = normalize_condition_text(text)
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


def is_flagged(rule: SourceRule) -> bool:
    """A rule is flagged if it deletes, forwards, forwards as attachment, or runs client-side."""
    return bool(
        rule.delete_message
        or rule.forward_to
        or rule.forward_as_attachment_to
        or not rule.supported_by_task
    )


def extract_properties(rule: SourceRule, display_fields: Iterable[str]) -> Tuple[Tuple[str, Any], ...]:
    properties = []
    for field in display_fields:
        attribute = DISPLAY_FIELD_ATTRIBUTES.get(field)
        if attribute is None:
            raise KeyError(f"Unknown display field '{field}'")
        properties.append((field, getattr(rule, attribute)))
    return tuple(properties)


def build_rule_record(mailbox: str, rule: SourceRule, display_fields: Iterable[str] = DEFAULT_DISPLAY_FIELDS) -> RuleRecord:
    """Creates the immutable record for one rule. Identity is the server id, never the content."""
    return RuleRecord(
        mailbox=mailbox,
        rule_id=rule.rule_id,
        is_flagged=is_flagged(rule),
        condition_text=rule.description or "",
        properties=extract_properties(rule, display_fields),
        content_hash=compute_content_hash(rule.description),
        priority=rule.priority,
    )
