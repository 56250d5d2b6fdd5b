"""Main module for the media ingestion CLI."""

import sys
import json
import argparse
from typing import Any, Dict

from . import __version__
from .config import Settings
from .core.exceptions import MediaIngestError
from .core.factories import AppContext, MediaIngestFactory
from .core.retention import apply_retention_policy


def _print_json(payload: Dict[str, Any]) -> None:
    print(json.dumps(payload, indent=2))


def _issue_upload(context: AppContext, args: argparse.Namespace) -> None:
    issuer = MediaIngestFactory.create_issuer(context)
    issued = issuer.issue(
        {
            "tenant_id": args.tenant_id,
            "album_id": args.album_id,
            "filename": args.filename,
            "content_type": args.content_type,
            "image_id": args.image_id,
        }
    )
    _print_json(issued.to_wire())


def _complete_upload(context: AppContext, args: argparse.Namespace) -> None:
    notifier = MediaIngestFactory.create_notifier(context)
    event = notifier.notify(
        {"tenant_id": args.tenant_id, "album_id": args.album_id, "image_id": args.image_id}
    )
    _print_json(event.to_wire())


def _process_event(context: AppContext, args: argparse.Namespace) -> None:
    with open(args.event_file, "r", encoding="utf-8") as fh:
        event = json.load(fh)
    batch = MediaIngestFactory.create_listener(context).handle(event)
    _print_json({"results": [r.model_dump(mode="json") for r in batch.results]})


def _apply_retention(context: AppContext, args: argparse.Namespace) -> None:
    policy = MediaIngestFactory.create_retention_policy(context, days=args.days)
    rules = apply_retention_policy(
        context.s3_client, context.settings.media_bucket, policy, context.logger
    )
    _print_json({"bucket": context.settings.media_bucket, "rules": rules})


def main() -> None:
    """
    Entry point for the ``media-ingest`` command-line interface.

    Every command except ``version`` and ``show-variants`` builds the AWS
    dependency context from environment configuration first.
    """
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="media-ingest",
        description="Media ingestion - upload credentials, variant generation and retention",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Issue an upload credential
  media-ingest issue-upload --tenant-id t1 --album-id a1 \\
                            --filename photo.jpg --content-type image/jpeg

  # Replay a stored S3 notification
  media-ingest process-event --event-file event.json

  # Install the raw upload expiry rule
  media-ingest apply-retention --days 3
        """,
    )

    subparsers: argparse._SubParsersAction = parser.add_subparsers(
        dest="command", help="Available commands"
    )

    issue_parser = subparsers.add_parser("issue-upload", help="Issue an upload credential")
    issue_parser.add_argument("--tenant-id", required=True, help="Tenant id")
    issue_parser.add_argument("--album-id", required=True, help="Album id")
    issue_parser.add_argument("--filename", required=True, help="Client filename")
    issue_parser.add_argument("--content-type", required=True, help="MIME type of the upload")
    issue_parser.add_argument("--image-id", default=None, help="Reuse an existing image id")

    complete_parser = subparsers.add_parser(
        "complete-upload", help="Emit the ImageUploaded signal"
    )
    complete_parser.add_argument("--tenant-id", required=True, help="Tenant id")
    complete_parser.add_argument("--album-id", required=True, help="Album id")
    complete_parser.add_argument("--image-id", required=True, help="Image id")

    process_parser = subparsers.add_parser(
        "process-event", help="Process a stored S3 notification document"
    )
    process_parser.add_argument("--event-file", required=True, help="Path to the event JSON")

    retention_parser = subparsers.add_parser(
        "apply-retention", help="Install the raw upload lifecycle rule"
    )
    retention_parser.add_argument(
        "--days", type=int, default=None, help="Override RAW_RETENTION_DAYS"
    )

    subparsers.add_parser("show-variants", help="Show the effective variant specs")
    subparsers.add_parser("version", help="Show version information")

    args: argparse.Namespace = parser.parse_args()

    if args.command == "version":
        print("Media Ingest CLI")
        print(f"Version {__version__}")
        sys.exit(0)

    elif args.command == "show-variants":
        specs = Settings().variant_specs
        _print_json({"variants": [spec.to_wire() for spec in specs]})

    elif args.command in ("issue-upload", "complete-upload", "process-event", "apply-retention"):
        commands = {
            "issue-upload": _issue_upload,
            "complete-upload": _complete_upload,
            "process-event": _process_event,
            "apply-retention": _apply_retention,
        }
        try:
            context = MediaIngestFactory.create_context()
            commands[args.command](context, args)
        except MediaIngestError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            sys.exit(1)

    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
