"""Parsed-command audit log.

Records every interpreted command with its pipeline path and debug info,
with a privacy toggle for storing the raw command text.
"""

import json
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

import duckdb

from ..models import ParsedCommand, PipelinePath


@dataclass
class ParsedCommandRecord:
    """A stored audit entry for one parse."""

    id: str
    session_id: str
    command: str | None
    action: str
    confidence: float
    path: str
    used_override: bool
    parameters: dict[str, Any] | None
    debug: dict[str, Any] | None
    created_at: datetime


def _load_json(value: Any) -> Any:
    return json.loads(value) if isinstance(value, str) and value else value


def _row_to_record(row: tuple) -> ParsedCommandRecord:
    return ParsedCommandRecord(
        id=str(row[0]),
        session_id=row[1],
        command=row[2],
        action=row[3],
        confidence=row[4],
        path=row[5],
        used_override=bool(row[6]),
        parameters=_load_json(row[7]),
        debug=_load_json(row[8]),
        created_at=row[9],
    )


def record_parsed_command(
    conn: duckdb.DuckDBPyConnection,
    session_id: str,
    command: str,
    parsed: ParsedCommand,
    store_command_text: bool = False,
) -> ParsedCommandRecord:
    """Store a parsed command in the audit log.

    Args:
        conn: Database connection.
        session_id: Conversation the command belongs to.
        command: Raw command text (only stored if store_command_text=True).
        parsed: The pipeline's result.
        store_command_text: Whether to store the raw text (privacy toggle).

    Returns:
        Created ParsedCommandRecord.
    """
    record_id = str(uuid.uuid4())
    now = datetime.now(UTC)
    stored_command = command if store_command_text else None

    debug = parsed.to_dict().get("debug")
    path = parsed.debug.path.value if parsed.debug else PipelinePath.LLM.value
    used_override = parsed.debug.used_override if parsed.debug else False

    conn.execute(
        """
        INSERT INTO parsed_commands
        (id, session_id, command, action, confidence, path, used_override,
         parameters, debug, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        [
            record_id,
            session_id,
            stored_command,
            parsed.action,
            parsed.confidence,
            path,
            used_override,
            json.dumps(parsed.parameters, default=str),
            json.dumps(debug, default=str) if debug is not None else None,
            now,
        ],
    )

    return ParsedCommandRecord(
        id=record_id,
        session_id=session_id,
        command=stored_command,
        action=parsed.action,
        confidence=parsed.confidence,
        path=path,
        used_override=used_override,
        parameters=dict(parsed.parameters),
        debug=debug,
        created_at=now,
    )


def get_parsed_commands(
    conn: duckdb.DuckDBPyConnection,
    session_id: str | None = None,
    action: str | None = None,
    limit: int = 100,
) -> list[ParsedCommandRecord]:
    """Query the audit log with optional filters.

    Args:
        conn: Database connection.
        session_id: Filter by session.
        action: Filter by resolved action.
        limit: Maximum number of records to return.

    Returns:
        List of ParsedCommandRecord objects, newest first.
    """
    query = """
        SELECT id, session_id, command, action, confidence, path, used_override,
               parameters, debug, created_at
        FROM parsed_commands
        WHERE 1=1
    """
    params: list[Any] = []

    if session_id:
        query += " AND session_id = ?"
        params.append(session_id)

    if action:
        query += " AND action = ?"
        params.append(action)

    query += " ORDER BY created_at DESC LIMIT ?"
    params.append(limit)

    return [_row_to_record(row) for row in conn.execute(query, params).fetchall()]
