"""Kinesis record -> CloudSearch document translation."""
import base64
import binascii
import json
import logging
from dataclasses import dataclass

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1

logger = logging.getLogger(__name__)


class DecodeError(ValueError):
    """A Kinesis record payload is not a valid source event."""


@dataclass(frozen=True)
class SourceEvent:
    file_path: str
    id: int


@dataclass(frozen=True)
class CloudSearchDocument:
    directory: str
    file_name: str
    file_extension: str

    def to_dict(self):
        return {
            "dir": self.directory,
            "name": self.file_name,
            "ext": self.file_extension,
        }


@dataclass(frozen=True)
class UploadRequest:
    id: str
    fields: CloudSearchDocument
    type: str = "add"

    def to_dict(self):
        return {"type": self.type, "id": self.id, "fields": self.fields.to_dict()}


def decode_record_data(record):
    """Return the raw bytes carried by a Kinesis stream record."""
    try:
        data = record["kinesis"]["data"]
    except (KeyError, TypeError) as exc:
        raise DecodeError(f"Record has no kinesis data: {exc!r}") from exc

    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, TypeError, ValueError) as exc:
        raise DecodeError(f"Record data is not valid base64: {exc}") from exc


def _lookup(payload, key):
    """Exact key first, then the first key equal to it ignoring case."""
    if key in payload:
        return payload[key]
    folded = key.casefold()
    for name, value in payload.items():
        if name.casefold() == folded:
            return value
    return None


def decode_source_event(data: bytes) -> SourceEvent:
    try:
        payload = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise DecodeError(f"Record data is not JSON: {exc}") from exc

    if not isinstance(payload, dict):
        raise DecodeError(f"Expected a JSON object, got {type(payload).__name__}")

    file_path = _lookup(payload, "filePath")
    if not isinstance(file_path, str):
        raise DecodeError(f"filePath must be a string, got {file_path!r}")

    # bool is an int subclass; JSON true/false is not an id.
    doc_id = _lookup(payload, "id")
    if isinstance(doc_id, bool) or not isinstance(doc_id, int):
        raise DecodeError(f"id must be an integer, got {doc_id!r}")
    if not INT64_MIN <= doc_id <= INT64_MAX:
        raise DecodeError(f"id out of range: {doc_id}")

    return SourceEvent(file_path=file_path, id=doc_id)


def split_path(path):
    """Split into (directory, file name) with any back-slashes read as '/'.

    The directory keeps its trailing slash, so ``directory + file_name``
    rebuilds the normalized path.
    """
    normalized = path.replace("\\", "/")
    head, sep, tail = normalized.rpartition("/")
    return head + sep, tail


def file_extension(path):
    _, name = split_path(path)
    _, dot, ext = name.rpartition(".")
    return ext if dot else ""


def to_cloudsearch_document(event: SourceEvent) -> CloudSearchDocument:
    directory, file_name = split_path(event.file_path)
    return CloudSearchDocument(
        directory=directory,
        file_name=file_name,
        file_extension=file_extension(event.file_path),
    )


def create_upload_request(doc_id: int, document: CloudSearchDocument) -> UploadRequest:
    return UploadRequest(id=str(doc_id), fields=document)


def build_upload_batch(records):
    """Translate Kinesis records into upload requests, in input order.

    Raises DecodeError on the first bad record; nothing is returned for the
    records before it.
    """
    batch = []
    for record in records:
        data = decode_record_data(record)
        logger.info(
            "%s Data = %s",
            record.get("eventName"),
            data.decode("utf-8", errors="replace"),
        )

        event = decode_source_event(data)
        document = to_cloudsearch_document(event)
        batch.append(create_upload_request(event.id, document))
    return batch


def serialize_batch(batch):
    return json.dumps(
        [item.to_dict() for item in batch], separators=(",", ":")
    ).encode("utf-8")
