import logging
import os
from dataclasses import dataclass
from typing import NamedTuple, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from documents import DecodeError, build_upload_batch, serialize_batch

# Retries done by botocore on the upload call; not configurable.
MAX_RETRIES = 6


def _level_name(name):
    # Unknown names fall back to INFO rather than failing the import.
    name = name.strip().upper()
    if isinstance(logging.getLevelName(name), int):
        return name
    return "INFO"


@dataclass(frozen=True)
class Settings:
    search_region: str
    search_endpoint: str
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ=None):
        environ = os.environ if environ is None else environ
        return cls(
            search_region=environ["SearchRegion"],
            search_endpoint=environ["SearchEndpoint"],
            log_level=_level_name(environ.get("LOG_LEVEL", "INFO")),
        )

    @property
    def endpoint_url(self):
        if "://" in self.search_endpoint:
            return self.search_endpoint
        return f"https://{self.search_endpoint}"


class UploadError(RuntimeError):
    """The CloudSearch document upload did not succeed."""


class Result(NamedTuple):
    ok: bool
    error: Optional[Exception] = None

    def to_dict(self):
        return {"ok": self.ok}


def make_client(settings: Settings):
    return boto3.client(
        "cloudsearchdomain",
        region_name=settings.search_region,
        endpoint_url=settings.endpoint_url,
        config=Config(retries={"max_attempts": MAX_RETRIES}),
    )


SETTINGS = Settings.from_env()

logger = logging.getLogger()
logger.setLevel(SETTINGS.log_level)

cloudsearch = make_client(SETTINGS)


def upload_batch(client, batch):
    """Send the whole batch to CloudSearch in one call."""
    try:
        body = serialize_batch(batch)
    except (TypeError, ValueError) as exc:
        raise UploadError(f"Could not serialize upload batch: {exc}") from exc
    logger.debug("Search document = %s", body.decode("utf-8"))

    logger.info("Uploading %d documents to CloudSearch", len(batch))
    try:
        resp = client.upload_documents(
            documents=body,
            contentType="application/json",
        )
    except (ClientError, BotoCoreError) as exc:
        raise UploadError(f"CloudSearch upload failed: {exc}") from exc

    status = resp.get("status")
    if status != "success":
        raise UploadError(f"CloudSearch upload returned status {status!r}: {resp}")

    logger.info(
        "CloudSearch upload %s: adds=%s warnings=%s",
        status,
        resp.get("adds"),
        resp.get("warnings", []),
    )
    return resp


def process_batch(records, client) -> Result:
    """Translate and upload one Kinesis batch; all or nothing."""
    try:
        batch = build_upload_batch(records)
    except DecodeError as exc:
        return Result(ok=False, error=exc)

    # Nothing to index, so no call to CloudSearch.
    if not batch:
        return Result(ok=True)

    try:
        upload_batch(client, batch)
    except UploadError as exc:
        return Result(ok=False, error=exc)
    return Result(ok=True)


def handler(event, context):
    """Triggered by Kinesis stream batches; indexes each record in CloudSearch."""
    records = event.get("Records", [])
    logger.info("Received %d records from Kinesis", len(records))

    result = process_batch(records, cloudsearch)
    if not result.ok:
        logger.error("Batch failed: %s", result.error, exc_info=result.error)
        raise result.error

    return result.to_dict()
