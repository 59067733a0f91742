from models.config import MonitorConfig
from models.rules import ClassifiedRule, RuleStatus, SourceRule
from rules.fingerprint import build_rule_record


def make_rule(rule_id="R1", description="If the message is from 'ceo@x.com'", name="CEO rule",
              delete=False, forward_to=(), forward_as_attachment_to=(), supported=True, priority=1):
    return SourceRule(rule_id=rule_id, name=name, description=description, priority=priority,
                      delete_message=delete, forward_to=tuple(forward_to),
                      forward_as_attachment_to=tuple(forward_as_attachment_to),
                      supported_by_task=supported)


def make_classified(status=RuleStatus.NEW, mailbox="alice@x.com", **rule_kwargs):
    record = build_rule_record(mailbox, make_rule(**rule_kwargs))
    return ClassifiedRule(record=record, status=status)


def make_config(**overrides):
    values = dict(from_address="monitor@x.com", to_address="admin@x.com", smtp_server="relay.x.com")
    values.update(overrides)
    return MonitorConfig(**values)


class FakeRuleSource:
    """Rule source backed by a dict of mailbox -> rules; an Exception value simulates a failed fetch."""

    def __init__(self, rules_by_mailbox):
        self.rules_by_mailbox = rules_by_mailbox

    def list_mailboxes(self, configured=()):
        return list(configured) or list(self.rules_by_mailbox)

    def list_rules(self, mailbox):
        rules = self.rules_by_mailbox[mailbox]
        if isinstance(rules, Exception):
            raise rules
        return rules
