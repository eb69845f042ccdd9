#!/usr/bin/env python3
"""Interactive console for the command interpretation pipeline.

Reads commands from stdin, parses them against the configured classify and
extract services, and prints the resulting ParsedCommand as JSON. Multi-step
flows can be started with ":flow <FLOW_ID> <ACTION> <label>" and are then
advanced by each following line.
"""

import argparse
import json
import logging
import os
import sys
import uuid
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from stocktalk.assistant_config import load_assistant_config  # noqa: E402
from stocktalk.commands import FlowEngine, create_orchestrator  # noqa: E402
from stocktalk.db.connection import init_db  # noqa: E402
from stocktalk.metrics import get_metrics_collector  # noqa: E402


def main() -> int:
    parser = argparse.ArgumentParser(description="Parse inventory commands interactively")
    parser.add_argument("--config", type=str, default=None, help="Path to assistant YAML config")
    parser.add_argument("--session", type=str, default=None, help="Session id (default: random)")
    parser.add_argument(
        "--db-path",
        type=str,
        default=None,
        help="Audit log database (overrides DUCKDB_PATH env var)",
    )
    parser.add_argument("--no-audit", action="store_true", help="Do not write the audit log")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    config = load_assistant_config(args.config)
    os.environ.setdefault("STOCKTALK_ENABLE_METRICS", "true")
    metrics = get_metrics_collector()
    command_log = None if args.no_audit else init_db(args.db_path)
    orchestrator = create_orchestrator(config, command_log=command_log)
    flows = FlowEngine(orchestrator.context_manager, metrics)
    session_id = args.session or str(uuid.uuid4())

    for line in sys.stdin:
        text = line.strip()
        if text == ":clear":
            orchestrator.clear_context(session_id)
            print("context cleared")
            continue
        if text == ":metrics":
            print(json.dumps(metrics.get_snapshot(), indent=2))
            continue
        if text.startswith(":flow "):
            parts = text.split(maxsplit=3)
            if len(parts) < 3:
                print("usage: :flow <FLOW_ID> <ACTION> [label]")
                continue
            try:
                label = parts[3] if len(parts) > 3 else ""
                print(flows.start(session_id, parts[1], parts[2], {}, label))
            except ValueError as e:
                print(f"error: {e}")
            continue
        if flows.is_active(session_id):
            print(json.dumps(flows.advance(session_id, text).to_dict(), indent=2, default=str))
            continue
        if text:
            result = orchestrator.parse_command(text, session_id)
            print(json.dumps(result.to_dict(), indent=2, default=str))

    if command_log is not None:
        command_log.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
