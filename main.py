import argparse
import sys
from datetime import datetime
from typing import Optional

from clients.gmail_client import GmailClient
from clients.smtp_client import SmtpNotifier
from data.baseline_manager import BaselineManager
from models.config import DEFAULT_CONFIG_FILE, ConfigError, MonitorConfig, load_config
from models.notification import Notification
from reports.report_renderer import render_heartbeat, render_report, render_text
from rules.rules_processor import RuleProcessor
from rules.schedule_gate import should_send_heartbeat

EXIT_OK = 0
EXIT_INIT_FAILED = 1
EXIT_NO_MAILBOXES = 2
EXIT_BASELINE_SAVE_FAILED = 3


def run_rule_monitor(config: MonitorConfig, rule_source, notifier, baseline_manager,
                     check_now: bool = False, dry_run: bool = False, verbose: bool = False,
                     now: Optional[datetime] = None) -> int:
    """
    One monitoring run.
    1. Discover mailboxes (none at all is fatal).
    2. Load the baseline, then classify every mailbox's flagged rules.
    3. Send the change report, or the heartbeat if nothing changed and the window is open.
    4. Persist the full snapshot as the new baseline.
    """
    now = now or datetime.now()

    print("Step 1: Discovering mailboxes...")
    mailboxes = rule_source.list_mailboxes(config.mailboxes)
    if not mailboxes:
        print("No mailboxes found. Nothing was checked and the baseline is unchanged.")
        return EXIT_NO_MAILBOXES

    print("Step 2: Loading baseline and checking rules...")
    baseline = baseline_manager.load()
    processor = RuleProcessor(
        rule_source=rule_source,
        baseline=baseline,
        check_now=check_now,
        display_fields=config.display_fields,
        verbose=verbose
    )
    report = processor.process_mailboxes(mailboxes)
    if report.failed_mailboxes:
        print(f"Rules could not be read for {len(report.failed_mailboxes)} mailbox(es): {', '.join(report.failed_mailboxes)}")

    print("Step 3: Preparing notification...")
    html_body = render_report(report, config)
    notification = None
    if html_body:
        print(f"Reporting {report.rule_count} rule(s) across {len(report.sections)} mailbox(es).")
        notification = Notification(
            from_address=config.from_address,
            to_address=config.to_address,
            subject=config.subject,
            html_body=html_body,
            text_body=render_text(report)
        )
    elif should_send_heartbeat(now, config.heartbeat_window_start,
                               config.heartbeat_window_minutes, config.heartbeat_enabled):
        print("No rule changes detected; sending daily heartbeat.")
        notification = Notification(
            from_address=config.from_address,
            to_address=config.to_address,
            subject=config.heartbeat_subject,
            html_body=render_heartbeat(config),
            text_body=render_text(report)
        )
    else:
        print("No rule changes detected; outside the heartbeat window, nothing sent.")

    if notification and not notifier.send(notification):
        print("Notification could not be delivered; findings are kept in the baseline.")

    if dry_run:
        print("Step 4: Dry-run mode enabled; baseline not updated.")
    else:
        print("Step 4: Saving baseline...")
        try:
            baseline_manager.save(processor.snapshot)
        except OSError as e:
            print(f"Error saving baseline {baseline_manager.file_path}: {e}")
            return EXIT_BASELINE_SAVE_FAILED

    return EXIT_OK


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description='Report new or modified forwarding/deleting mailbox rules')
    parser.add_argument('--config', default=DEFAULT_CONFIG_FILE, help='Path to the JSON configuration file')
    parser.add_argument('--check-now', action='store_true', help='Report every flagged rule, ignoring the baseline')
    parser.add_argument('--dry-run', action='store_true', help='Print the notification instead of sending it; do not update the baseline')
    parser.add_argument('--verbose', action='store_true', help='Show the classification of every flagged rule')
    args = parser.parse_args(argv)

    print("--- Rule Monitor Started ---")

    # Initialize components
    try:
        config = load_config(args.config)
        gmail_client = GmailClient(credentials_file=config.credentials_file, token_file=config.token_file)
    except ConfigError as e:
        print(f"Configuration error: {e}")
        return EXIT_INIT_FAILED
    except Exception as e:
        print(f"Critical error during initialization: {e}")
        return EXIT_INIT_FAILED

    notifier = SmtpNotifier(config.smtp_server, config.smtp_port, starttls=config.smtp_starttls, dry_run=args.dry_run)
    exit_code = run_rule_monitor(
        config,
        rule_source=gmail_client,
        notifier=notifier,
        baseline_manager=BaselineManager(config.baseline_file),
        check_now=args.check_now,
        dry_run=args.dry_run,
        verbose=args.verbose
    )
    print("--- Rule Monitor Finished ---")
    return exit_code


if __name__ == '__main__':
    sys.exit(main())
