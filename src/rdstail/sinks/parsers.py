"""Line parsers for structured sinks.

Log content is not interpreted: a line becomes a single `message` field.
Parsers are picked once at startup by database type.
"""

from __future__ import annotations

from typing import Any

from rdstail.constants import RDS_POSTGRES_LINE_PREFIX
from rdstail.core.errors import ConfigurationError
from rdstail.core.interfaces import ILineParser


class RawLineParser:
    """Wrap each non-blank line as `{"message": line, **static_fields}`."""

    def __init__(self, static_fields: dict[str, Any] | None = None) -> None:
        self.static_fields = dict(static_fields or {})

    def parse(self, line: str) -> dict[str, Any] | None:
        line = line.rstrip("\r")
        if not line.strip():
            return None
        return {**self.static_fields, "message": line}


def parser_for(db_type: str) -> ILineParser:
    """Return the parser for a database type ("mysql" or "postgresql")."""
    if db_type == "mysql":
        return RawLineParser({"db_type": "mysql"})
    if db_type == "postgresql":
        return RawLineParser({"db_type": "postgresql", "log_line_prefix": RDS_POSTGRES_LINE_PREFIX})
    raise ConfigurationError(f"Unknown dbtype value `{db_type}`")
