# Run from the project root: python -m scripts.demo_report
import sys

from clients.smtp_client import SmtpNotifier
from models.config import MonitorConfig
from models.rules import SourceRule
from main import run_rule_monitor


class DemoRuleSource:
    """In-memory rule source with one forwarding rule and one client-side rule."""

    def list_mailboxes(self, configured=()):
        return ['alice@example.com', 'bob@example.com']

    def list_rules(self, mailbox):
        if mailbox == 'alice@example.com':
            return [SourceRule(rule_id='demo-1', name='Forward invoices', priority=1,
                               description="If the subject includes 'invoice'",
                               forward_to=('outside@example.net',))]
        return [SourceRule(rule_id='demo-2', name='Move newsletters', priority=1,
                           description="If the message is from 'news@example.org'",
                           supported_by_task=False)]


class InMemoryBaseline:
    def load(self):
        return None

    def save(self, snapshot):
        pass


def run_demo():
    config = MonitorConfig(from_address='monitor@example.com', to_address='admin@example.com',
                           smtp_server='localhost')
    # Use dry_run so the report is printed but not sent
    notifier = SmtpNotifier(config.smtp_server, config.smtp_port, dry_run=True)
    return run_rule_monitor(config, DemoRuleSource(), notifier, InMemoryBaseline(), dry_run=True, verbose=True)


if __name__ == '__main__':
    try:
        sys.exit(run_demo())
    except Exception as e:
        print('Demo failed:', e)
        sys.exit(1)
