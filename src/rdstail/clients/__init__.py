"""Remote API clients.

This package provides:
- RDSLogsClient: boto3-backed implementation of ILogSegmentsProvider
"""

from rdstail.clients.rds import RDSLogsClient, classify_client_error

__all__ = [
    "RDSLogsClient",
    "classify_client_error",
]
