"""DuckDB persistence for the parsed-command audit log."""

from .command_log import ParsedCommandRecord, get_parsed_commands, record_parsed_command
from .connection import get_connection, get_db_path, init_db
from .migrations import run_migrations

__all__ = [
    "ParsedCommandRecord",
    "get_connection",
    "get_db_path",
    "get_parsed_commands",
    "init_db",
    "record_parsed_command",
    "run_migrations",
]
