"""S3ObjectStore against a stub boto3 S3 client (no network)."""

import pytest
from botocore.exceptions import ClientError

from sqs_extended import io_storage
from sqs_extended.config import load_config
from sqs_extended.factory import create_client
from sqs_extended.io_sqs import SQSQueueService
from sqs_extended.io_storage import S3ObjectStore


def _client_error(code, op="GetObject"):
    return ClientError({"Error": {"Code": code, "Message": code}}, op)


class StubBody:
    def __init__(self, data):
        self._data = data
        self.closed = False

    def iter_chunks(self, chunk_size=1024):
        for i in range(0, len(self._data), chunk_size):
            yield self._data[i:i + chunk_size]

    def close(self):
        self.closed = True


class StubS3:
    def __init__(self):
        self.objects = {}
        self.calls = []
        self.errors = {}  # method name -> list of exceptions
        self.parts = {}

    def _maybe_fail(self, name):
        self.calls.append(name)
        pending = self.errors.get(name)
        if pending:
            raise pending.pop(0)

    def put_object(self, Bucket, Key, Body, ContentType=None):
        self._maybe_fail("put_object")
        self.objects[(Bucket, Key)] = Body

    def get_object(self, Bucket, Key):
        self._maybe_fail("get_object")
        if (Bucket, Key) not in self.objects:
            raise _client_error("NoSuchKey")
        return {"Body": StubBody(self.objects[(Bucket, Key)])}

    def delete_object(self, Bucket, Key):
        self._maybe_fail("delete_object")
        self.objects.pop((Bucket, Key), None)

    def create_multipart_upload(self, Bucket, Key, ContentType=None):
        self._maybe_fail("create_multipart_upload")
        self.parts[(Bucket, Key)] = []
        return {"UploadId": "up-1"}

    def upload_part(self, Bucket, Key, PartNumber, UploadId, Body):
        self._maybe_fail("upload_part")
        self.parts[(Bucket, Key)].append(Body)
        return {"ETag": f"etag-{PartNumber}"}

    def complete_multipart_upload(self, Bucket, Key, UploadId, MultipartUpload):
        self._maybe_fail("complete_multipart_upload")
        self.objects[(Bucket, Key)] = b"".join(self.parts.pop((Bucket, Key)))

    def abort_multipart_upload(self, Bucket, Key, UploadId):
        self._maybe_fail("abort_multipart_upload")
        self.parts.pop((Bucket, Key), None)


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    monkeypatch.setattr("sqs_extended.io_storage.time.sleep", lambda s: None)


@pytest.mark.asyncio
async def test_put_get_delete():
    stub = StubS3()
    store = S3ObjectStore(s3_client=stub)

    await store.put("b", "k", b"payload")
    assert await store.get("b", "k") == b"payload"
    await store.delete("b", "k")
    assert stub.objects == {}


@pytest.mark.asyncio
async def test_delete_missing_key_is_idempotent():
    stub = StubS3()
    stub.errors["delete_object"] = [_client_error("NoSuchKey", "DeleteObject")]
    await S3ObjectStore(s3_client=stub).delete("b", "missing")


@pytest.mark.asyncio
async def test_get_missing_key_maps_to_file_not_found():
    store = S3ObjectStore(s3_client=StubS3())
    with pytest.raises(FileNotFoundError):
        await store.get("b", "missing")


@pytest.mark.asyncio
async def test_access_denied_maps_to_permission_error():
    stub = StubS3()
    stub.errors["put_object"] = [_client_error("AccessDenied", "PutObject")]
    with pytest.raises(PermissionError):
        await S3ObjectStore(s3_client=stub).put("b", "k", b"x")


@pytest.mark.asyncio
async def test_transient_error_is_retried():
    stub = StubS3()
    stub.errors["put_object"] = [_client_error("SlowDown", "PutObject")]
    await S3ObjectStore(s3_client=stub).put("b", "k", b"x")
    assert stub.calls.count("put_object") == 2
    assert stub.objects[("b", "k")] == b"x"


@pytest.mark.asyncio
async def test_large_payload_uses_multipart(monkeypatch):
    monkeypatch.setattr(io_storage, "MULTIPART_THRESHOLD", 10)
    monkeypatch.setattr(io_storage, "PART_SIZE", 4)
    stub = StubS3()
    await S3ObjectStore(s3_client=stub).put("b", "k", b"0123456789abcdef")

    assert stub.calls.count("upload_part") == 4
    assert stub.objects[("b", "k")] == b"0123456789abcdef"


@pytest.mark.asyncio
async def test_failed_multipart_is_aborted(monkeypatch):
    monkeypatch.setattr(io_storage, "MULTIPART_THRESHOLD", 10)
    stub = StubS3()
    stub.errors["upload_part"] = [_client_error("AccessDenied", "UploadPart")]
    with pytest.raises(PermissionError):
        await S3ObjectStore(s3_client=stub).put("b", "k", b"0123456789abcdef")
    assert "abort_multipart_upload" in stub.calls
    assert stub.objects == {}


@pytest.mark.asyncio
async def test_put_rejects_non_bytes():
    with pytest.raises(TypeError):
        await S3ObjectStore(s3_client=StubS3()).put("b", "k", "text")


def test_create_client_wires_adapters():
    cfg = load_config(env={"SQS_EXTENDED_BUCKET": "wired", "SQS_EXTENDED_THRESHOLD": "2048"})
    s3 = StubS3()
    client = create_client(cfg, sqs_client=object(), s3_client=s3)

    assert isinstance(client.queue, SQSQueueService)
    assert isinstance(client.store, S3ObjectStore)
    assert client.store.s3 is s3
    assert client.bucket_name == "wired"
    assert client.message_size_threshold == 2048
