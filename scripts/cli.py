"""Minimal CLI entry point for manual runs of the Gmail Notion sync."""

from __future__ import annotations

import argparse
import logging
import sys

from pydantic import ValidationError

from gmail_notion_sync.config.settings import GmailSyncSettings
from gmail_notion_sync.core.models import SyncProgress
from gmail_notion_sync.pipeline.syncer import EmailSyncer


def setup_logging(level: str) -> None:
    """Configure logging with timestamp and module info."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def on_progress(progress: SyncProgress) -> None:
    """Print progress updates to stdout."""
    print(
        f"[{progress.current_stage}] "
        f"discovered={progress.emails_discovered} "
        f"synced={progress.emails_synced} "
        f"failed={progress.emails_failed} "
        f"attachments={progress.attachments_uploaded}",
        end="\r",
        flush=True,
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        description="Gmail Notion Sync - File labelled emails as Notion pages"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # list-labels command
    subparsers.add_parser("list-labels", help="List all Gmail labels")

    # list command
    list_parser = subparsers.add_parser("list", help="List parsed emails carrying a label")
    list_parser.add_argument("--label", "-l", required=True, help="Gmail label name")

    # attachment command
    attachment_parser = subparsers.add_parser("attachment", help="Fetch one attachment")
    attachment_parser.add_argument("message_id", help="Gmail message ID")
    attachment_parser.add_argument("attachment_id", help="Gmail attachment ID")

    # sync command
    sync_parser = subparsers.add_parser("sync", help="Sync one message into Notion")
    sync_parser.add_argument("message_id", help="Gmail message ID")

    # sync-label command
    sync_label_parser = subparsers.add_parser(
        "sync-label", help="Sync every message carrying a label"
    )
    sync_label_parser.add_argument(
        "--label", "-l", help="Gmail label name (default: from settings)"
    )
    sync_label_parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Cap total messages synced",
    )

    return parser


def _validate_limit(args: argparse.Namespace) -> None:
    """Reject negative --limit values."""
    if getattr(args, "limit", None) is not None and args.limit < 0:
        print("Error: --limit must be non-negative", file=sys.stderr)
        sys.exit(1)


def main() -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args()
    if not args.command:
        parser.print_help()
        sys.exit(1)

    _validate_limit(args)

    try:
        settings = GmailSyncSettings()
    except ValidationError as e:
        print(f"Invalid configuration:\n{e}", file=sys.stderr)
        sys.exit(1)
    setup_logging(settings.log_level)

    syncer = EmailSyncer(settings=settings, on_progress=on_progress)

    try:
        if args.command == "list-labels":
            labels = syncer.list_labels()
            print(f"\nFound {len(labels)} labels:\n")
            for label in sorted(labels, key=lambda x: x["name"]):
                print(f"  {label['id']:40s} {label['name']}")

        elif args.command == "list":
            emails = syncer.fetch_emails_by_label_name(args.label)
            print(f"\nFound {len(emails)} emails with label [{args.label}]:\n")
            for email in emails:
                print(f"  {email.id:20s} {email.date:%Y-%m-%d} {email.subject}")

        elif args.command == "attachment":
            payload = syncer.fetch_attachment(args.message_id, args.attachment_id)
            if payload is None:
                print(f"\nNo attachment [{args.attachment_id}] found")
                sys.exit(1)
            print(f"\nAttachment size: {payload.size} bytes")

        elif args.command == "sync":
            page = syncer.sync_email(args.message_id)
            if page is None:
                print(f"\nFailed to sync message [{args.message_id}]", file=sys.stderr)
                sys.exit(1)
            print(f"\nCreated Notion page {page.get('id', '')}")

        elif args.command == "sync-label":
            progress = syncer.sync_label(args.label, limit=args.limit)
            print(f"\n\nComplete: {progress}")

    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        sys.exit(130)
    except Exception as e:
        print(f"\nError: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        syncer.close()


if __name__ == "__main__":
    main()
