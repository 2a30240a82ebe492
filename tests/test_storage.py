import io

import pytest
from botocore.exceptions import ClientError
from fastapi import UploadFile
from starlette.datastructures import Headers

from backend.app.errors import InvalidArgument, Unavailable
from backend.app.services.storage import (
    LocalStorage,
    ObjectStorage,
    PayloadTooLarge,
    S3Storage,
    build_key,
    discard_image,
    read_image,
)


PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def upload(content: bytes, content_type: str = "image/png", filename: str = "photo.png") -> UploadFile:
    return UploadFile(
        file=io.BytesIO(content),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


class RecordingS3Client:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.put_calls = []
        self.deleted = []

    def put_object(self, **kwargs):
        if self.fail:
            raise ClientError({"Error": {"Code": "500", "Message": "boom"}}, "PutObject")
        self.put_calls.append(kwargs)

    def delete_object(self, Bucket, Key):
        self.deleted.append((Bucket, Key))


def test_build_key():
    key = build_key("/shops/5/", "image/webp")
    assert key.startswith("shops/5/")
    assert key.endswith(".webp")
    assert len(key.split("/")[-1]) == 32 + len(".webp")


async def test_read_image_accepts_allowed_type():
    assert await read_image(upload(PNG)) == PNG


async def test_read_image_rejects_type():
    with pytest.raises(InvalidArgument):
        await read_image(upload(b"%PDF", content_type="application/pdf", filename="doc.pdf"))


async def test_read_image_rejects_empty():
    with pytest.raises(InvalidArgument):
        await read_image(upload(b""))


async def test_read_image_rejects_large_file():
    with pytest.raises(PayloadTooLarge):
        await read_image(upload(PNG * 10), max_size=100)


async def test_local_upload_and_delete(tmp_path):
    storage = LocalStorage(root=tmp_path, url_prefix="/media")

    url = await storage.upload(PNG, "products/1", "image/png")

    assert url.startswith("/media/products/1/") and url.endswith(".png")
    path = tmp_path / url[len("/media/"):]
    assert path.read_bytes() == PNG

    assert await storage.delete(url) is True
    assert not path.exists()
    assert await storage.delete(url) is False


async def test_local_delete_ignores_foreign_urls(tmp_path):
    outside = tmp_path / "secret.txt"
    outside.write_text("keep")
    storage = LocalStorage(root=tmp_path / "uploads", url_prefix="/media")

    assert await storage.delete("https://cdn.example.com/a.png") is False
    assert await storage.delete("/media/../secret.txt") is False
    assert outside.exists()


async def test_s3_upload_uses_public_url():
    client = RecordingS3Client()
    storage = S3Storage(bucket="lavka-media", region="eu-central-1", endpoint_url=None, client=client)

    url = await storage.upload(PNG, "shops/3", "image/png")

    call = client.put_calls[0]
    assert call["Bucket"] == "lavka-media"
    assert call["ACL"] == "public-read"
    assert call["ContentType"] == "image/png"
    assert url == f"https://lavka-media.s3.eu-central-1.amazonaws.com/{call['Key']}"

    assert await storage.delete(url) is True
    assert client.deleted == [("lavka-media", call["Key"])]


async def test_s3_custom_endpoint_urls():
    storage = S3Storage(bucket="media", region="us-east-1", endpoint_url="http://minio:9000/", client=RecordingS3Client())

    assert storage.public_url("a/b.png") == "http://minio:9000/media/a/b.png"
    assert storage.key_from_url("http://minio:9000/media/a/b.png") == "a/b.png"
    assert storage.key_from_url("https://other.example.com/a/b.png") is None


async def test_s3_failure_is_unavailable():
    storage = S3Storage(bucket="media", region="us-east-1", endpoint_url=None, client=RecordingS3Client(fail=True))
    with pytest.raises(Unavailable):
        await storage.upload(PNG, "shops/1", "image/png")


async def test_discard_image_logs_storage_outage(caplog):
    class FailingStorage(ObjectStorage):
        async def upload(self, data, key_prefix, content_type):
            raise Unavailable("disk is gone")

        async def delete(self, url):
            raise Unavailable("disk is gone")

    storage = FailingStorage()
    await discard_image(storage, "/media/x.png")
    await discard_image(storage, None)
    assert "was not deleted" in caplog.text


def test_storage_backend_must_implement_delete():
    class UploadOnlyStorage(ObjectStorage):
        async def upload(self, data, key_prefix, content_type):
            return "/media/x.png"

    with pytest.raises(TypeError):
        UploadOnlyStorage()
