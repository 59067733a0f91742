#!/usr/bin/env python3
import argparse

from data.baseline_manager import BaselineManager
from models.config import DEFAULT_CONFIG_FILE, ConfigError, load_config


def _baseline_manager(args) -> BaselineManager:
    if args.baseline:
        return BaselineManager(args.baseline)
    return BaselineManager(load_config(args.config).baseline_file)


def cmd_show(args):
    manager = _baseline_manager(args)
    baseline = manager.load()
    if baseline is None:
        print('No usable baseline; the next run will be a full scan.')
        return
    for mailbox in sorted(baseline):
        print(f"{mailbox}: {len(baseline[mailbox])} flagged rule(s)")
        if args.verbose:
            for rule_id, entry in sorted(baseline[mailbox].items()):
                print(f"  {rule_id}  {entry.hash}")


def cmd_reset(args):
    manager = _baseline_manager(args)
    if not args.yes:
        confirm = input(f"Delete baseline {manager.file_path}? The next run will report every flagged rule. (y/N): ")
        if confirm.lower() != 'y':
            print('Canceled')
            return
    if manager.reset():
        print('Baseline deleted. The next run will be a full scan.')
    else:
        print('No baseline file to delete.')


def main():
    p = argparse.ArgumentParser(description='Manage the rule monitor baseline')
    p.add_argument('--config', default=DEFAULT_CONFIG_FILE, help='Path to the JSON configuration file')
    p.add_argument('--baseline', type=str, help='Baseline file path (overrides the configuration)')
    sub = p.add_subparsers(dest='cmd')

    show = sub.add_parser('show-baseline', help='List mailboxes and rule counts in the baseline')
    show.add_argument('--verbose', action='store_true', help='Also list rule ids and hashes')

    reset = sub.add_parser('reset-baseline', help='Delete the baseline to force a full scan')
    reset.add_argument('--yes', action='store_true', help='Do not ask for confirmation')

    args = p.parse_args()

    try:
        if args.cmd == 'show-baseline':
            cmd_show(args)
        elif args.cmd == 'reset-baseline':
            cmd_reset(args)
        else:
            p.print_help()
    except ConfigError as e:
        print(f"Configuration error: {e}")


if __name__ == '__main__':
    main()
