import argparse
import json
import logging
import sys
from datetime import date
from dotenv import find_dotenv, load_dotenv
from .config import ConfigError, Config, load_config
from .jira import JiraClient
from .notify import WebhookNotifier
from .reconcile import Reconciler
from .renderer import render_check, render_list, render_markdown, render_report
from .report import generate, to_json
from .scanner import scan_repo, split_by_window
from .state import StateError, TicketState
from .utils import ScanError

logger = logging.getLogger("debtbomb")


def _scan(path, today):
    try:
        return scan_repo(path, today=today)
    except ScanError as e:
        print(f"Error scanning: {e}", file=sys.stderr)
        sys.exit(1)


def _print_json(data):
    print(json.dumps(data, indent=2))


def cmd_list(args, today):
    items = _scan(args.path, today)
    if args.expired:
        items = [it for it in items if it.is_expired]
    if args.json:
        _print_json([it.to_dict() for it in items])
    else:
        sys.stdout.write(render_list(items))
    return 0


def cmd_check(args, today):
    items = _scan(args.path, today)
    expired, warning = split_by_window(items, today, args.warn_in_days)
    if args.json:
        _print_json([it.to_dict() for it in items])
    elif expired or warning:
        sys.stdout.write(render_check(expired, warning, args.warn_in_days))
    return 1 if expired else 0


def cmd_report(args, today):
    items = _scan(args.path, today)
    rep = generate(items, today)
    if args.json:
        _print_json(to_json(rep))
    else:
        sys.stdout.write(render_report(rep))
    if args.markdown:
        render_markdown(rep, items, args.path)
    return 0


def cmd_notify(args, today):
    try:
        cfg = load_config(args.path)
    except ConfigError as e:
        logger.warning("Failed to load config: %s", e)
        cfg = Config()

    try:
        state = TicketState.load(args.path)
    except StateError as e:
        logger.error("Error loading state: %s", e)
        return 0

    tracker = None
    if cfg.jira_enabled():
        j = cfg.jira
        tracker = JiraClient(j.base_url, j.email, j.api_token)
    notifier = WebhookNotifier(cfg.webhooks())

    try:
        try:
            items = scan_repo(args.path, today=today)
        except ScanError as e:
            logger.error("Error scanning: %s", e)
            return 0
        reconciler = Reconciler(cfg, state, tracker, notifier, today=today, checkpoint=args.checkpoint)
        try:
            reconciler.sync(items, check_days=args.expire_in_days, expired_only=args.expired)
        except StateError as e:
            logger.error("Error during sync/notify: %s", e)
    finally:
        notifier.close()
        if tracker is not None:
            tracker.close()
    return 0


def build_parser():
    parser = argparse.ArgumentParser(prog="debtbomb", description="Find expired tech debt markers")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="cmd", required=True)

    ls = sub.add_parser("list", help="List all debtbombs")
    ls.add_argument("path", nargs="?", default=".", help="Repository root")
    ls.add_argument("--expired", action="store_true", help="Show only expired bombs")
    ls.add_argument("--json", action="store_true", help="Output in JSON format")
    ls.set_defaults(func=cmd_list)

    check = sub.add_parser("check", help="Exit 1 if any debtbomb has expired")
    check.add_argument("path", nargs="?", default=".", help="Repository root")
    check.add_argument("--json", action="store_true", help="Output in JSON format")
    check.add_argument("--warn-in-days", type=int, default=0, help="Warn about bombs expiring within N days")
    check.set_defaults(func=cmd_check)

    report = sub.add_parser("report", help="Aggregated statistics about technical debt")
    report.add_argument("path", nargs="?", default=".", help="Repository root")
    report.add_argument("--json", action="store_true", help="Output in JSON format")
    report.add_argument("--markdown", action="store_true", help="Emit DEBTBOMB.md")
    report.set_defaults(func=cmd_report)

    notify = sub.add_parser("notify", help="Sync Jira tickets and send notifications")
    notify.add_argument("path", nargs="?", default=".", help="Repository root")
    notify.add_argument("--expired", action="store_true", help="Process expired bombs only")
    notify.add_argument("--expire-in-days", type=int, default=0, help="Warn about bombs expiring in N days")
    notify.add_argument("--checkpoint", action="store_true", help="Save the ticket map after every created ticket")
    notify.set_defaults(func=cmd_notify)
    return parser


def main(argv=None):
    load_dotenv(find_dotenv(usecwd=True))
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    return args.func(args, date.today())


if __name__ == "__main__":
    sys.exit(main())
