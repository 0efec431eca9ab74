#!/usr/bin/env python3
"""
Command-line interface for Toolgate.

Subcommands:
- toolgate check: evaluate one PreToolUse hook input read from stdin
- toolgate replay: run a recorded event stream and print the audit summary
- toolgate init-config: write the default configuration file

Usage:
    echo '{"tool_name": "Bash", "tool_input": {"command": "ls"}}' | toolgate check
    toolgate replay events.jsonl -c config/toolgate.yaml
    toolgate init-config -c config/toolgate.yaml
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

from rich.console import Console

from . import __version__
from .domain.hook_integration import (
    ToolInterceptor,
    decision_to_hook_output,
    event_from_hook_input,
)
from .domain.models import HookEventName, ToolgateError
from .infrastructure.config import ConfigManager
from .infrastructure.logging_config import configure_stderr_logging
from .infrastructure.reporting import render_summary
from .main import create_interceptor

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_DENIED = 2


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="toolgate",
        description="Tool-call interception and policy enforcement for agents",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Check one tool call (exit code 2 and a deny decision if blocked)
  echo '{"tool_name": "Bash", "tool_input": {"command": "rm -rf /"}}' | toolgate check

  # Replay recorded PreToolUse/PostToolUse events and summarize the audit trail
  toolgate replay events.jsonl --json
        """,
    )
    parser.add_argument(
        "--version", action="version", version=f"toolgate {__version__}"
    )
    parser.add_argument(
        "--log-level", default=None, help="Override the configured log level"
    )

    subparsers = parser.add_subparsers(
        dest="command", metavar="{check,replay,init-config}"
    )

    check_parser = subparsers.add_parser(
        "check", help="Evaluate a PreToolUse hook input from stdin"
    )
    check_parser.add_argument("-c", "--config", type=Path, help="Config file path")

    replay_parser = subparsers.add_parser(
        "replay", help="Replay a JSONL event stream and summarize the audit trail"
    )
    replay_parser.add_argument("events", type=Path, help="JSONL file of hook inputs")
    replay_parser.add_argument("-c", "--config", type=Path, help="Config file path")
    replay_parser.add_argument(
        "--json", action="store_true", help="Print the summary as JSON"
    )

    init_parser = subparsers.add_parser(
        "init-config", help="Write the default configuration file"
    )
    init_parser.add_argument("-c", "--config", type=Path, help="Config file path")

    return parser


def _load_interceptor(args: argparse.Namespace) -> ToolInterceptor:
    config_file = str(args.config) if args.config else None
    config = ConfigManager(config_file).load_config()
    configure_stderr_logging(
        level=args.log_level or config.log_level,
        json_logs=config.json_logs,
        audit_log_file=config.audit_log_file,
    )
    return create_interceptor(config)


async def run_check(args: argparse.Namespace) -> int:
    interceptor = _load_interceptor(args)

    input_data = sys.stdin.read().strip()
    if not input_data:
        print("No input data received on stdin", file=sys.stderr)
        return EXIT_ERROR

    try:
        raw_input = json.loads(input_data)
        if not isinstance(raw_input, dict):
            raise ValueError("hook input must be a JSON object")
        event = event_from_hook_input(raw_input)
    except (ValueError, ToolgateError) as e:
        print(f"Invalid hook input: {e}", file=sys.stderr)
        return EXIT_ERROR

    if event.phase != HookEventName.PRE_TOOL_USE:
        print("check only evaluates PreToolUse events", file=sys.stderr)
        return EXIT_ERROR

    decision = await interceptor.on_pre_tool_use(event)
    print(json.dumps(decision_to_hook_output(decision)))

    if decision.denied:
        print(decision.reason or "Denied", file=sys.stderr)
        return EXIT_DENIED
    return EXIT_OK


def _read_events(path: Path) -> list[dict[str, Any]]:
    records = []
    with open(path, encoding="utf-8") as f:
        for line_number, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                records.append(json.loads(line))
            except json.JSONDecodeError as e:
                raise ValueError(f"{path}:{line_number}: {e}") from e
    return records


async def run_replay(args: argparse.Namespace) -> int:
    interceptor = _load_interceptor(args)

    try:
        records = _read_events(args.events)
    except (OSError, ValueError) as e:
        print(f"Cannot read events: {e}", file=sys.stderr)
        return EXIT_ERROR

    await interceptor.start_session()
    denied: set[str] = set()
    for record in records:
        try:
            event = event_from_hook_input(record)
        except ToolgateError as e:
            print(f"Skipping invalid event: {e.message}", file=sys.stderr)
            continue

        if event.phase == HookEventName.PRE_TOOL_USE:
            decision = await interceptor.on_pre_tool_use(event)
            if decision.denied:
                denied.add(event.invocation_id)
        elif event.invocation_id in denied:
            # The runtime never executes a denied tool
            continue
        else:
            await interceptor.on_post_tool_use(event, event.result)
    await interceptor.end_session()

    trail = interceptor.dispatcher.audit_trail
    if args.json:
        output = interceptor.summarize().model_dump(mode="json")
        output["blocked"] = [
            entry.model_dump(mode="json") for entry in trail.blocked_entries()
        ]
        print(json.dumps(output, indent=2))
    else:
        render_summary(trail, Console())
    return EXIT_OK


def run_init_config(args: argparse.Namespace) -> int:
    config_file = str(args.config) if args.config else None
    path = ConfigManager(config_file).save_default_config()
    print(f"Wrote default configuration to {path}")
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return EXIT_ERROR

    try:
        if args.command == "check":
            return asyncio.run(run_check(args))
        if args.command == "replay":
            return asyncio.run(run_replay(args))
        return run_init_config(args)
    except ToolgateError as e:
        print(f"Error: {e.user_message}: {e.message}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
