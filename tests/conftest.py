"""Pytest configuration for test suite."""

import base64
import json
import os
import sys
from pathlib import Path

import pytest

# Lambda functions are flat directories, not packages.
ROOT_DIR = Path(__file__).parent.parent
INDEXER_DIR = ROOT_DIR / "lambda" / "indexer"

if str(INDEXER_DIR) not in sys.path:
    sys.path.insert(0, str(INDEXER_DIR))

# app reads these at import time, like it does in Lambda.
os.environ.setdefault("SearchRegion", "us-east-1")
os.environ.setdefault(
    "SearchEndpoint", "doc-files-test.us-east-1.cloudsearch.amazonaws.com"
)
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")


def kinesis_record(data, event_name="aws:kinesis:record"):
    if isinstance(data, dict):
        data = json.dumps(data)
    if isinstance(data, str):
        data = data.encode("utf-8")
    return {
        "eventSource": "aws:kinesis",
        "eventName": event_name,
        "kinesis": {
            "partitionKey": "files",
            "sequenceNumber": "49590338271490256608559692538361571095921575989136588898",
            "data": base64.b64encode(data).decode("ascii"),
        },
    }


@pytest.fixture
def make_record():
    return kinesis_record
