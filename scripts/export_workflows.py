#!/usr/bin/env python3
"""
Autoflow workflow export utility.

This script reads a JSON-lines event log, segments it into workflows and
prints or exports them. It is a maintenance tool for inspecting what the
observer recorded; the dashboard uses the same WorkflowHandler.

Typical usage:

    # List workflows
    python scripts/export_workflows.py \
        --log ./autoflow/events.jsonl \
        list

    # Export one workflow's actions (replayable) to a JSON file
    python scripts/export_workflows.py \
        --log ./autoflow/events.jsonl \
        export --number 2 --output workflow_2.json

    # Export every workflow to individual files in a directory
    python scripts/export_workflows.py \
        --log ./autoflow/events.jsonl \
        --config config/autoflow.example.yml \
        export-all --output-dir ./workflow_exports
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from common.config import AutoflowConfig, ConfigError, load_config
from ledger.api.endpoints.workflows import WorkflowError, WorkflowHandler
from ledger.storage.event_log import JsonLinesEventLog


JSONDict = Dict[str, Any]


# --------------------------------------------------------------------------- #
# Helpers
# --------------------------------------------------------------------------- #


def write_json(payload: JSONDict, output_path: Path) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2)


# --------------------------------------------------------------------------- #
# Command handlers
# --------------------------------------------------------------------------- #


def cmd_list(handler: WorkflowHandler, _args: argparse.Namespace) -> int:
    workflows = handler.list_workflows()["workflows"]
    if not workflows:
        print("No workflows found.")
        return 0

    for wf in workflows:
        print(f"* Workflow {wf['number']}")
        print(f"  domain: {wf['domain']}")
        print(f"  steps:  {wf['steps']}")
        print()
    return 0


def cmd_export(handler: WorkflowHandler, args: argparse.Namespace) -> int:
    output = Path(args.output) if args.output else Path(f"workflow_{args.number}.json")
    try:
        details = handler.get_workflow(args.number)
    except WorkflowError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    write_json(details, output)
    print(f"Exported workflow {args.number} -> {output}")
    return 0


def cmd_export_all(handler: WorkflowHandler, args: argparse.Namespace) -> int:
    out_dir = Path(args.output_dir)
    summaries = handler.list_workflows()["workflows"]
    if not summaries:
        print("No workflows found to export.")
        return 0

    for summary in summaries:
        number = summary["number"]
        path = out_dir / f"workflow_{number}.json"
        write_json(handler.get_workflow(number), path)
        print(f"Exported workflow {number} -> {path}")
    return 0


# --------------------------------------------------------------------------- #
# CLI setup
# --------------------------------------------------------------------------- #


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="List and export workflows from an Autoflow event log.",
    )
    parser.add_argument(
        "--log",
        required=True,
        help="Path to the JSON-lines event log.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Optional YAML config (see config/autoflow.example.yml).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("list", help="List workflows found in the log.")

    p_export = subparsers.add_parser("export", help="Export one workflow to JSON.")
    p_export.add_argument("--number", type=int, required=True, help="1-based workflow number.")
    p_export.add_argument(
        "--output",
        default=None,
        help="Output file path (default: workflow_<number>.json).",
    )

    p_export_all = subparsers.add_parser(
        "export-all",
        help="Export all workflows to individual JSON files in a directory.",
    )
    p_export_all.add_argument(
        "--output-dir",
        default="./workflow_exports",
        help="Directory where export files will be written (default: ./workflow_exports).",
    )

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    try:
        config = load_config(args.config) if args.config else AutoflowConfig()
    except ConfigError as exc:
        print(f"ConfigError: {exc}", file=sys.stderr)
        return 2

    handler = WorkflowHandler(
        log=JsonLinesEventLog(args.log),
        config=config.segmentation,
    )

    if args.command == "list":
        return cmd_list(handler, args)
    if args.command == "export":
        return cmd_export(handler, args)
    if args.command == "export-all":
        return cmd_export_all(handler, args)

    parser.print_help()
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
