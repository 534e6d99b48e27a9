import boto3
import pytest
from botocore.exceptions import EndpointConnectionError, NoCredentialsError
from botocore.stub import Stubber

from rdstail.clients.rds import RDSLogsClient, classify_client_error
from rdstail.core.errors import (
    CredentialsMissing,
    InaccessibleBinaryRange,
    InstanceNotFound,
    RateLimited,
    RemoteUnavailable,
    SegmentNotFound,
)
from rdstail.core.use_cases.directory import SegmentDirectory


@pytest.fixture
def stubbed():
    client = boto3.client(
        "rds",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )
    with Stubber(client) as stubber:
        yield RDSLogsClient(client=client), stubber
        stubber.assert_no_pending_responses()


@pytest.mark.asyncio
async def test_list_segments_follows_markers(stubbed) -> None:
    rds, stubber = stubbed
    stubber.add_response(
        "describe_db_log_files",
        {
            "DescribeDBLogFiles": [
                {"LogFileName": "error/mysql-error.log", "LastWritten": 1474959300000, "Size": 2196},
            ],
            "Marker": "page-2",
        },
        {"DBInstanceIdentifier": "db-1"},
    )
    stubber.add_response(
        "describe_db_log_files",
        {
            "DescribeDBLogFiles": [
                {"LogFileName": "slowquery/mysql-slowquery.log", "LastWritten": 1474959400000, "Size": 10},
            ],
        },
        {"DBInstanceIdentifier": "db-1", "Marker": "page-2"},
    )

    segments = await SegmentDirectory(rds, "db-1").list_segments()

    assert [s.name for s in segments] == ["error/mysql-error.log", "slowquery/mysql-slowquery.log"]
    assert segments[0].size == 2196
    assert segments[0].last_written == 1474959300000


@pytest.mark.asyncio
async def test_fetch_portion_probe_and_marker(stubbed) -> None:
    rds, stubber = stubbed
    stubber.add_response(
        "download_db_log_file_portion",
        {"LogFileData": "line\n", "Marker": "12:5", "AdditionalDataPending": False},
        {"DBInstanceIdentifier": "db-1", "LogFileName": "error/mysql-error.log", "NumberOfLines": 1},
    )
    stubber.add_response(
        "download_db_log_file_portion",
        {"Marker": "12:5", "AdditionalDataPending": False},
        {
            "DBInstanceIdentifier": "db-1",
            "LogFileName": "error/mysql-error.log",
            "Marker": "12:5",
            "NumberOfLines": 10000,
        },
    )

    first = await rds.fetch_portion("db-1", "error/mysql-error.log", None, 1)
    second = await rds.fetch_portion("db-1", "error/mysql-error.log", "12:5", 10000)

    assert first.data == "line\n"
    assert first.marker == "12:5"
    assert not first.more_pending
    assert second.data is None
    assert not second.has_data


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "code, message, expected",
    [
        ("Throttling", "Rate exceeded", RateLimited),
        ("InvalidParameterValue", "This file contains binary data and should be downloaded instead.",
         InaccessibleBinaryRange),
        ("DBLogFileNotFoundFault", "DBLog File: error/mysql-error.log.3, is not found", SegmentNotFound),
        ("DBInstanceNotFound", "DBInstance db-2 not found.", InstanceNotFound),
        ("AccessDenied", "not authorized", RemoteUnavailable),
        ("InvalidParameterValue", "Marker is invalid", RemoteUnavailable),
    ],
)
async def test_fetch_errors_are_classified(stubbed, code, message, expected) -> None:
    rds, stubber = stubbed
    stubber.add_client_error("download_db_log_file_portion", service_error_code=code, service_message=message)

    with pytest.raises(expected):
        await rds.fetch_portion("db-1", "error/mysql-error.log", "1:1", 10)


@pytest.mark.asyncio
async def test_list_instances_paginates(stubbed) -> None:
    rds, stubber = stubbed
    stubber.add_response(
        "describe_db_instances",
        {"DBInstances": [{"DBInstanceIdentifier": "db-1"}], "Marker": "m"},
        {},
    )
    stubber.add_response(
        "describe_db_instances",
        {"DBInstances": [{"DBInstanceIdentifier": "db-2"}]},
        {"Marker": "m"},
    )

    assert await rds.list_instances() == ["db-1", "db-2"]


def test_classify_transport_and_credentials_errors() -> None:
    assert isinstance(classify_client_error(NoCredentialsError()), CredentialsMissing)
    err = classify_client_error(EndpointConnectionError(endpoint_url="https://rds.us-east-1.amazonaws.com"))
    assert isinstance(err, RemoteUnavailable)
