"""Amazon RDS log API client.

This module provides:
- `RDSLogsClient`: an async adapter over the boto3 `rds` client that
  implements `ILogSegmentsProvider`
- `classify_client_error`: maps botocore errors onto `core.errors`

boto3 is blocking, so every call runs in a worker thread. botocore's own
retries are capped at one attempt so that throttling reaches the tail
loop, which owns the backoff policy.
"""

from __future__ import annotations

import asyncio
import shutil
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError

from rdstail.core.errors import (
    CredentialsMissing,
    InaccessibleBinaryRange,
    InstanceNotFound,
    RateLimited,
    RdsTailError,
    RemoteUnavailable,
    SegmentNotFound,
)
from rdstail.core.models import FetchResult, LogSegment, SegmentPage

_THROTTLE_CODES = {"Throttling", "ThrottlingException", "RequestLimitExceeded", "TooManyRequestsException"}
_NOT_FOUND_CODES = {"DBLogFileNotFoundFault", "DBLogFileNotFound"}
_INSTANCE_CODES = {"DBInstanceNotFound", "DBInstanceNotFoundFault"}


def credentials_help() -> str:
    """Guidance printed when no AWS credentials can be found."""
    if shutil.which("aws"):
        return 'Unable to locate credentials. You can configure credentials by running "aws configure".'
    return (
        "Unable to locate AWS credentials. You have a few options:\n"
        "- Create an IAM role for the host machine with the permissions to access RDS\n"
        "- Use an AWS shared config file (~/.aws/config)\n"
        "- Configure credentials on a development machine (via ~/.aws/credentials)\n"
        "- Or set the AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY environment variables"
    )


def classify_client_error(exc: Exception) -> RdsTailError:
    """Translate a boto exception into the matching domain error."""
    if isinstance(exc, NoCredentialsError):
        return CredentialsMissing(credentials_help())
    if isinstance(exc, ClientError):
        err = exc.response.get("Error", {})
        code = err.get("Code", "")
        message = err.get("Message", "") or str(exc)
        text = f"{code}: {message}"
        if code in _THROTTLE_CODES:
            return RateLimited(text)
        if code == "InvalidParameterValue" and "binary data" in message.lower():
            return InaccessibleBinaryRange(text)
        if code in _NOT_FOUND_CODES:
            return SegmentNotFound(text)
        if code in _INSTANCE_CODES:
            return InstanceNotFound(text)
        return RemoteUnavailable(text)
    return RemoteUnavailable(f"{type(exc).__name__}: {exc}")


class RDSLogsClient:
    """Async RDS log client.

    Parameters
    ----------
    region : str
        AWS region of the instances.
    client : Any
        Pre-built boto3 RDS client (tests pass a stubbed one).
    """

    def __init__(self, region: str = "us-east-1", *, client: Any | None = None) -> None:
        self.region = region
        self.client = client or boto3.client(
            "rds",
            region_name=region,
            config=Config(retries={"mode": "standard", "total_max_attempts": 1}),
        )

    async def _call(self, method: str, **params: Any) -> dict[str, Any]:
        try:
            return await asyncio.to_thread(getattr(self.client, method), **params)
        except (ClientError, BotoCoreError) as e:
            raise classify_client_error(e) from e

    async def list_segments(self, instance_id: str, token: str | None = None) -> SegmentPage:
        """Return one page of DescribeDBLogFiles."""
        params: dict[str, Any] = {"DBInstanceIdentifier": instance_id}
        if token is not None:
            params["Marker"] = token
        out = await self._call("describe_db_log_files", **params)

        segments = [
            LogSegment(
                name=lf["LogFileName"],
                size=int(lf.get("Size", 0)),
                last_written=int(lf.get("LastWritten", 0)),
            )
            for lf in out.get("DescribeDBLogFiles", [])
        ]
        return SegmentPage(segments=segments, next_token=out.get("Marker") or None)

    async def fetch_portion(
        self,
        instance_id: str,
        segment_name: str,
        marker: str | None = None,
        max_lines: int | None = None,
    ) -> FetchResult:
        """Return one DownloadDBLogFilePortion page."""
        params: dict[str, Any] = {
            "DBInstanceIdentifier": instance_id,
            "LogFileName": segment_name,
        }
        if marker:
            params["Marker"] = marker
        if max_lines is not None:
            params["NumberOfLines"] = max_lines
        out = await self._call("download_db_log_file_portion", **params)
        return FetchResult(
            data=out.get("LogFileData"),
            marker=out.get("Marker"),
            more_pending=bool(out.get("AdditionalDataPending", False)),
        )

    async def list_instances(self) -> list[str]:
        """Return all DB instance identifiers in the region."""
        instances: list[str] = []
        token: str | None = None
        while True:
            params: dict[str, Any] = {}
            if token:
                params["Marker"] = token
            out = await self._call("describe_db_instances", **params)
            instances.extend(db["DBInstanceIdentifier"] for db in out.get("DBInstances", []))
            token = out.get("Marker")
            if not token:
                return instances
