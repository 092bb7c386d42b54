"""Pytest configuration and fixtures."""

import json
import os

import pytest

# Set environment variables before imports
os.environ["TABLE_NAME"] = "sitepulse-test"
os.environ["STAGE"] = "test"
os.environ["AWS_DEFAULT_REGION"] = "us-east-1"
os.environ["AWS_ACCESS_KEY_ID"] = "testing"
os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
os.environ["GEO_LOOKUP_ENABLED"] = "false"
os.environ.pop("IPINFO_TOKEN", None)


@pytest.fixture
def aws_credentials():
    """Mock AWS credentials for moto."""
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "us-east-1"


@pytest.fixture
def dynamodb_table(aws_credentials):
    """Create mocked DynamoDB table."""
    import boto3
    from moto import mock_aws

    with mock_aws():
        dynamodb = boto3.resource("dynamodb", region_name="us-east-1")

        table = dynamodb.create_table(
            TableName="sitepulse-test",
            KeySchema=[
                {"AttributeName": "PK", "KeyType": "HASH"},
                {"AttributeName": "SK", "KeyType": "RANGE"},
            ],
            AttributeDefinitions=[
                {"AttributeName": "PK", "AttributeType": "S"},
                {"AttributeName": "SK", "AttributeType": "S"},
                {"AttributeName": "GSI1PK", "AttributeType": "S"},
                {"AttributeName": "GSI1SK", "AttributeType": "S"},
            ],
            GlobalSecondaryIndexes=[
                {
                    "IndexName": "GSI1",
                    "KeySchema": [
                        {"AttributeName": "GSI1PK", "KeyType": "HASH"},
                        {"AttributeName": "GSI1SK", "KeyType": "RANGE"},
                    ],
                    "Projection": {"ProjectionType": "ALL"},
                },
            ],
            BillingMode="PAY_PER_REQUEST",
        )

        table.wait_until_exists()

        yield table


@pytest.fixture
def api_gateway_event():
    """Create a sample API Gateway (REST, proxy) event."""
    def _create_event(
        method: str = "GET",
        path: str = "/",
        query_params: dict = None,
        body: dict | str = None,
        headers: dict = None,
        multi_value_headers: dict = None,
        source_ip: str = "203.0.113.10",
    ):
        event = {
            "httpMethod": method,
            "path": path,
            "pathParameters": {},
            "queryStringParameters": query_params or None,
            "body": body if isinstance(body, str) else (
                json.dumps(body) if body is not None else None
            ),
            "headers": {
                "Content-Type": "application/json",
                "User-Agent": "pytest-agent/1.0",
                **(headers or {}),
            },
            "requestContext": {
                "identity": {"sourceIp": source_ip},
            },
        }
        if multi_value_headers:
            event["multiValueHeaders"] = multi_value_headers
        return event

    return _create_event


class LambdaContext:
    """Mock Lambda context."""

    def __init__(self):
        self.function_name = "test-function"
        self.memory_limit_in_mb = 128
        self.invoked_function_arn = "arn:aws:lambda:us-east-1:123456789:function:test"
        self.aws_request_id = "test-request-id"

    def get_remaining_time_in_millis(self):
        return 30000


@pytest.fixture
def lambda_context():
    """Create a mock Lambda context."""
    return LambdaContext()
