from __future__ import annotations

import itertools
import json

import pytest
from botocore.exceptions import ClientError
from cryptography.fernet import Fernet

from packswitch import create_selector
from state.base import StorageError
from state.models import StoredValues
from state.s3_store import OptimisticLockError, S3Storage


class _FakeBody:
    def __init__(self, data: bytes) -> None:
        self._data = data

    def read(self) -> bytes:
        return self._data


class _FakeS3:
    def __init__(self) -> None:
        self._store = {}  # (bucket, key) -> {Body: bytes, ETag: str}
        self._etags = itertools.count(1)

    def _etag(self) -> str:
        return f'"fake-{next(self._etags)}"'

    def put_object(self, *, Bucket: str, Key: str, Body: bytes, ContentType: str):
        etag = self._etag()
        self._store[(Bucket, Key)] = {"Body": Body, "ETag": etag}
        return {"ETag": etag}

    def get_object(self, *, Bucket: str, Key: str):
        item = self._store.get((Bucket, Key))
        if not item:
            raise ClientError({"Error": {"Code": "NoSuchKey"}}, "GetObject")
        return {"Body": _FakeBody(item["Body"]), "ETag": item["ETag"]}

    def copy_object(self, *, Bucket: str, Key: str, CopySource, IfMatch=None, MetadataDirective=None):
        dest_item = self._store.get((Bucket, Key))
        if IfMatch is not None:
            if not dest_item or dest_item.get("ETag") != IfMatch:
                raise ClientError({"Error": {"Code": "PreconditionFailed"}}, "CopyObject")

        src_item = self._store.get((CopySource["Bucket"], CopySource["Key"]))
        if not src_item:
            raise ClientError({"Error": {"Code": "NoSuchKey"}}, "CopyObject")

        etag = self._etag()
        self._store[(Bucket, Key)] = {"Body": src_item["Body"], "ETag": etag}
        return {"ETag": etag}

    def delete_object(self, *, Bucket: str, Key: str):
        self._store.pop((Bucket, Key), None)
        return {}

    def keys(self):
        return sorted(k for _, k in self._store)

    def raw(self, key: str) -> bytes:
        return self._store[("b", key)]["Body"]


class _RacingS3(_FakeS3):
    """Another writer stores `other=<n>` between our read and our conditional copy."""

    def __init__(self, races: int) -> None:
        super().__init__()
        self.races = races

    def copy_object(self, **kwargs):
        if self.races > 0:
            self.races -= 1
            doc = json.loads(self.raw("k"))
            doc["values"]["other"] = str(self.races)
            self.put_object(Bucket="b", Key="k", Body=json.dumps(doc).encode("utf-8"), ContentType="application/json")
        return super().copy_object(**kwargs)


def test_get_missing_object_returns_none():
    store = S3Storage(s3=_FakeS3(), bucket="b", key="k")
    assert store.get("v-locale") is None
    doc, etag = store.read()
    assert doc == StoredValues.empty()
    assert etag is None


def test_set_and_get_roundtrip_plain_json():
    s3 = _FakeS3()
    store = S3Storage(s3=s3, bucket="b", key="k")

    store.set("v-locale", "ja")
    store.set("other", "en")

    assert store.get("v-locale") == "ja"
    assert store.get("other") == "en"
    assert json.loads(s3.raw("k")) == {"values": {"other": "en", "v-locale": "ja"}}
    # temp objects from conditional writes are cleaned up
    assert s3.keys() == ["k"]


def test_encrypted_at_rest_with_fernet():
    s3 = _FakeS3()
    key = Fernet.generate_key()
    store = S3Storage(s3=s3, bucket="b", key="k", fernet_key=key)

    store.set("v-locale", "en")
    assert b"v-locale" not in s3.raw("k")
    assert store.get("v-locale") == "en"

    same_key_as_str = S3Storage(s3=s3, bucket="b", key="k", fernet_key=key.decode("ascii"))
    assert same_key_as_str.get("v-locale") == "en"


def test_wrong_fernet_key_raises_storage_error():
    s3 = _FakeS3()
    S3Storage(s3=s3, bucket="b", key="k", fernet_key=Fernet.generate_key()).set("v-locale", "en")

    other = S3Storage(s3=s3, bucket="b", key="k", fernet_key=Fernet.generate_key())
    with pytest.raises(StorageError):
        other.get("v-locale")


def test_garbage_document_raises_storage_error():
    s3 = _FakeS3()
    s3.put_object(Bucket="b", Key="k", Body=b"not json", ContentType="application/octet-stream")
    with pytest.raises(StorageError):
        S3Storage(s3=s3, bucket="b", key="k").get("v-locale")


def test_set_retries_after_lost_race():
    s3 = _RacingS3(races=1)
    store = S3Storage(s3=s3, bucket="b", key="k")
    store.write(StoredValues(values={"v-locale": "en"}))

    store.set("v-locale", "ja")
    assert store.get("v-locale") == "ja"
    # the concurrent writer's entry is kept, not clobbered
    assert store.get("other") == "0"
    assert s3.keys() == ["k"]


def test_set_gives_up_after_max_attempts():
    s3 = _RacingS3(races=5)
    store = S3Storage(s3=s3, bucket="b", key="k", max_attempts=2)
    store.write(StoredValues(values={"v-locale": "en"}))

    with pytest.raises(OptimisticLockError):
        store.set("v-locale", "ja")


def test_set_same_value_skips_write():
    s3 = _FakeS3()
    store = S3Storage(s3=s3, bucket="b", key="k")
    store.set("v-locale", "en")
    _, etag = store.read()
    store.set("v-locale", "en")
    assert store.read()[1] == etag


def test_invalid_max_attempts():
    with pytest.raises(ValueError):
        S3Storage(s3=_FakeS3(), bucket="b", key="k", max_attempts=0)


def test_from_env_missing_vars_raises():
    with pytest.raises(RuntimeError) as exc:
        S3Storage.from_env({"PACKSWITCH_S3_BUCKET": "b"})
    assert "PACKSWITCH_S3_KEY" in str(exc.value)


def test_selector_remembers_choice_in_s3():
    s3 = _FakeS3()
    packs = {"chs": {"hello": "你好"}, "en": {"hello": "Hello"}}
    store = S3Storage(s3=s3, bucket="b", key="k", fernet_key=Fernet.generate_key())

    lang = create_selector(packs, storage=store)
    lang._.set("en")

    again = create_selector(packs, storage=store)
    assert again.hello == "Hello"
