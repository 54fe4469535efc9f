"""CLI entry point for notecast.

Examples:
    ```bash
    python -m notecast profile
    python -m notecast publish notes/trip.md
    python -m notecast publish notes/trip.md --mode longform --title "Trip report"
    python -m notecast --config config/notecast.yaml --log-level DEBUG profile
    ```

Exit codes: 0 when at least one relay accepted the note (or the profile
lookup ran), 1 when every relay failed or none was reachable, 2 for local
validation failures (configuration, secret key, empty relay list).
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from notecast.core.exceptions import (
    ConfigurationError,
    InvalidCredentialFormatError,
    NoReachableEndpointsError,
)
from notecast.core.logger import Logger, StructuredFormatter
from notecast.core.metrics import write_metrics
from notecast.core.yaml import load_yaml
from notecast.models.constants import PublishMode
from notecast.models.note import Note
from notecast.services.config import NotecastConfig
from notecast.services.publisher import Publisher, PublishReport


DEFAULT_CONFIG = Path("config") / "notecast.yaml"

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_INVALID = 2

MODE_AUTO = "auto"

logger = Logger("cli")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="notecast",
        description="Publish markdown notes to Nostr relays",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG,
        help=f"Config path (default: {DEFAULT_CONFIG})",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Log level (default: WARNING)",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("profile", help="Show the profile and relay list of the configured key")

    publish = commands.add_parser("publish", help="Publish a markdown note")
    publish.add_argument("note", type=Path, help="Markdown file to publish")
    publish.add_argument("--title", help="Note title (default: first '# ' heading or file name)")
    publish.add_argument(
        "--mode",
        choices=[MODE_AUTO, *(m.value for m in PublishMode)],
        default=MODE_AUTO,
        help="Publish mode (default: auto, long-form above the length threshold)",
    )

    return parser.parse_args(argv)


def setup_logging(level: str) -> None:
    """Configure the root logger with structured formatting.

    Installs a ``StructuredFormatter`` on the root handler so that output from
    ``Logger`` and from plain ``logging.getLogger()`` calls in utils/nips is
    unified as ``level name message key=value ...``.
    """
    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter())
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level))


def _load_yaml_dict(path: Path) -> dict[str, Any]:
    """Load a YAML file as a dict, returning ``{}`` if the file does not exist."""
    if not path.exists():
        logger.warning("config_not_found", path=str(path))
        return {}
    return load_yaml(str(path))


def read_note(path: Path, title: str | None = None) -> Note:
    """Read a markdown file into a [Note][notecast.models.note.Note].

    Without an explicit *title*, a leading ``# Heading`` line becomes the
    title and is removed from the body; otherwise the file stem is used.
    """
    text = path.read_text(encoding="utf-8")
    if title is not None:
        return Note(title=title, body=text.strip())
    first, _, rest = text.lstrip().partition("\n")
    if first.startswith("# "):
        return Note(title=first[2:].strip(), body=rest.strip())
    return Note(title=path.stem, body=text.strip())


def render_report(report: PublishReport) -> str:
    """Render the human-readable publish summary."""
    lines: list[str] = []
    result = report.broadcast
    if result.any_success:
        what = "Long-form article" if report.mode == PublishMode.LONG_FORM else "Note"
        lines.append(f"{what} published successfully to {result.success_count} relay(s)!")
        if result.failed:
            lines.append(f"Failed to publish to {len(result.failed)} relay(s):")
    else:
        lines.append("Failed to publish to any relays:")
    lines.extend(f"  - {o.url}: {o.error_message}" for o in result.failed)

    failed_uploads = report.uploads.failed
    if failed_uploads:
        lines.append(f"Failed to upload {len(failed_uploads)} attachment(s):")
        lines.extend(f"  - {r.source_id}: {r.error_message}" for r in failed_uploads)
    lines.append(f"Record ID: {report.record.id}")
    return "\n".join(lines)


async def run_profile(publisher: Publisher) -> int:
    snapshot = await publisher.fetch_profile()
    print(f"npub: {snapshot.npub}")
    if snapshot.profile.found:
        profile = snapshot.profile.value  # type: ignore[union-attr]
        print(f"name: {profile.name or 'Anonymous'}")
        if profile.picture:
            print(f"picture: {profile.picture}")
    else:
        print("name: (no profile found)")
    if snapshot.relay_list.found:
        relay_list = snapshot.relay_list.value  # type: ignore[union-attr]
        print("relays: " + (", ".join(relay_list.urls) or "(empty)"))
    else:
        print("relays: (no relay list found)")
    return EXIT_OK


async def run_publish(publisher: Publisher, note: Note, mode: PublishMode | None) -> int:
    job = publisher.submit(note, mode)
    report = await job.result()
    if job.displayed:
        print(render_report(report))
    return EXIT_OK if report.success else EXIT_FAILED


async def main(argv: list[str] | None = None) -> int:
    """Main entry point: parse args, load config, and run the command."""
    args = parse_args(argv)
    setup_logging(args.log_level)

    try:
        config = NotecastConfig.from_dict(_load_yaml_dict(args.config))
    except (ConfigurationError, InvalidCredentialFormatError, ValidationError) as e:
        logger.error("config_invalid", error=str(e))
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return EXIT_INVALID

    publisher = Publisher(config, base_dir=args.note.parent if args.command == "publish" else None)
    try:
        if args.command == "profile":
            return await run_profile(publisher)
        try:
            note = read_note(args.note, args.title)
        except OSError as e:
            print(f"Cannot read note: {e}", file=sys.stderr)
            return EXIT_INVALID
        mode = None if args.mode == MODE_AUTO else PublishMode(args.mode)
        return await run_publish(publisher, note, mode)
    except ConfigurationError as e:
        print(str(e), file=sys.stderr)
        return EXIT_INVALID
    except NoReachableEndpointsError as e:
        logger.error("relays_unreachable", error=str(e))
        print(str(e), file=sys.stderr)
        return EXIT_FAILED
    finally:
        write_metrics(config.metrics)


def cli() -> None:
    """Synchronous entry point for console_scripts."""
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    cli()
