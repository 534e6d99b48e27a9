"""Output sinks for fetched log data.

This package provides:
- StdoutSink: raw passthrough to STDOUT
- HoneycombSink: parse lines and publish them as Honeycomb events
- RawLineParser / parser_for: line parsers selected by database type
"""

from rdstail.sinks.honeycomb import HoneycombSink
from rdstail.sinks.parsers import RawLineParser, parser_for
from rdstail.sinks.stdout import StdoutSink

__all__ = [
    "HoneycombSink",
    "RawLineParser",
    "StdoutSink",
    "parser_for",
]
