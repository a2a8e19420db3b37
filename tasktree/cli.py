"""CLI entry point for tasktree."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from .aggregate import completion_percent, get_completion_string, get_counts
from .cascade import SnapshotStore
from .config import load_settings
from .engine import ProgressEngine
from .errors import TaskTreeError


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tasktree",
        description="Task progress and parent auto-check for linked markdown checklists.",
    )
    parser.add_argument(
        "--vault",
        type=str,
        default=None,
        help="Vault root directory (or set TASKTREE_VAULT; default: current directory)",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="YAML settings file (default: .tasktree.yaml in the vault root, if present)",
    )
    parser.add_argument(
        "--ignore-tag",
        type=str,
        default=None,
        help="Tag that excludes a document from task trees (default: ignoretasktree)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    progress = sub.add_parser("progress", help="Show completion of a document")
    progress.add_argument("path", type=str, help="Document path, relative to the vault root or absolute")
    progress.add_argument(
        "--percent",
        action="store_true",
        help="Print only the completion percentage",
    )
    progress.add_argument(
        "--output-json",
        type=str,
        default=None,
        help="Write counts to a JSON file",
    )

    prop = sub.add_parser("propagate", help="Update parent checkboxes in one document")
    prop.add_argument("path", type=str, help="Document path, relative to the vault root or absolute")
    prop.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the updated document instead of writing it",
    )
    prop.add_argument(
        "--state-file",
        type=str,
        default=None,
        help="JSON file holding completion snapshots between runs",
    )

    cascade = sub.add_parser(
        "cascade", help="Update a document and every document linking to it"
    )
    cascade.add_argument("path", type=str, help="Changed document path, relative to the vault root or absolute")
    cascade.add_argument(
        "--state-file",
        type=str,
        default=None,
        help="JSON file holding completion snapshots between runs",
    )
    cascade.add_argument(
        "--output-json",
        type=str,
        default=None,
        help="Write cascade results to a JSON file",
    )

    render = sub.add_parser("render", help="Print a document with inline progress fields filled in")
    render.add_argument("path", type=str, help="Document path, relative to the vault root or absolute")

    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    # Configure logging
    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(message)s",
    )

    try:
        settings = load_settings(
            vault_root=args.vault,
            config_path=args.config,
            ignore_tag=args.ignore_tag,
        )
        state_file = getattr(args, "state_file", None)
        snapshots = SnapshotStore.load(state_file) if state_file else None
        engine = ProgressEngine(settings, snapshots=snapshots)

        if args.command == "progress":
            code = _cmd_progress(engine, args)
        elif args.command == "propagate":
            code = _cmd_propagate(engine, args)
        elif args.command == "cascade":
            code = _cmd_cascade(engine, args)
        else:
            print(engine.render_inline_fields(args.path), end="")
            code = 0
    except TaskTreeError as e:
        logging.error("%s", e)
        return 1

    if state_file:
        engine.snapshots.save(state_file)
    return code


def _cmd_progress(engine: ProgressEngine, args: argparse.Namespace) -> int:
    forest = engine.build_forest(args.path)
    counts = get_counts(forest)
    if args.percent:
        print(completion_percent(counts))
    else:
        print(get_completion_string(forest, engine.settings.template))

    if args.output_json:
        out = {
            "path": forest.source,
            "total": counts.total,
            "completed": counts.completed,
            "percentage": completion_percent(counts),
            "cyclic": forest.cyclic,
        }
        Path(args.output_json).write_text(json.dumps(out, indent=2))
        logging.info("Results written to %s", args.output_json)
    return 0


def _cmd_propagate(engine: ProgressEngine, args: argparse.Namespace) -> int:
    doc = engine.require_document(args.path)
    text = engine.vault.read_document(doc)
    result = engine.propagate(text, doc, engine.snapshots.get(doc))

    if args.dry_run:
        print(result.text, end="")
        logging.info("[DRY RUN] Would update %d line(s) in %s", len(result.changed_lines), doc)
        return 0

    engine.snapshots.put(doc, result.snapshot)
    if result.text != text:
        engine.vault.write_document(doc, result.text)
        logging.info("Updated %d parent task(s) in %s", len(result.changed_lines), doc)
    else:
        logging.info("No parent tasks to update in %s", doc)
    return 0


def _cmd_cascade(engine: ProgressEngine, args: argparse.Namespace) -> int:
    result = engine.on_document_changed(args.path)

    logging.info(
        "Cascade complete: %d visited, %d rewritten, %d unchanged",
        len(result.visited),
        len(result.rewritten),
        len(result.unchanged),
    )
    if result.errors:
        logging.warning("Errors encountered:")
        for err in result.errors:
            logging.warning("  - %s", err)

    if args.output_json:
        out = {
            "visited": result.visited,
            "rewritten": result.rewritten,
            "unchanged": result.unchanged,
            "errors": result.errors,
        }
        Path(args.output_json).write_text(json.dumps(out, indent=2))
        logging.info("Results written to %s", args.output_json)

    return 1 if result.errors else 0


if __name__ == "__main__":
    sys.exit(main())
