from __future__ import annotations

import json
import os
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple
from uuid import uuid4

import boto3
from botocore.exceptions import ClientError
from cryptography.fernet import Fernet, InvalidToken

from .base import StorageError
from .models import StoredValues


# Environment variable names for convenience configuration
ENV_BUCKET = "PACKSWITCH_S3_BUCKET"
ENV_KEY = "PACKSWITCH_S3_KEY"
ENV_FERNET_KEY = "PACKSWITCH_FERNET_KEY"
ENV_REGION = "AWS_REGION"

DEFAULT_MAX_ATTEMPTS = 3


class OptimisticLockError(StorageError):
    """Raised when `set` keeps losing the ETag compare-and-swap to other writers."""


def _to_fernet(key: str | bytes) -> Fernet:
    """Construct a Fernet instance from a user-provided key.

    The key must be a URL-safe base64-encoded 32-byte key (str or bytes),
    as returned by `cryptography.fernet.Fernet.generate_key()`.
    """
    if isinstance(key, str):
        key_bytes = key.encode("utf-8")
    else:
        key_bytes = key
    return Fernet(key_bytes)


def _dump_values_json(doc: StoredValues) -> bytes:
    # Deterministic JSON: stable key order, no extra whitespace
    return json.dumps(doc.model_dump(), separators=(",", ":"), sort_keys=True).encode("utf-8")


def _load_values_json(data: bytes) -> StoredValues:
    raw = json.loads(data.decode("utf-8"))
    return StoredValues.model_validate(raw)


@dataclass
class S3ObjectRef:
    bucket: str
    key: str


class S3Storage:
    """
    S3-backed key/value storage, one JSON document per object.

    Usage
    - Provide the S3 bucket/key and, optionally, a Fernet key to encrypt the
      document at rest. Without a Fernet key the document is stored as plain JSON.
    - `get(name)` reads the whole document and returns the stored string or None.
    - `set(name, value)` does a read-modify-write. When the object already
      exists the write is conditional on its ETag (copy-based compare-and-swap)
      and is retried up to `max_attempts` times if another writer got there first.

    Environment variables (optional)
    - `PACKSWITCH_S3_BUCKET`:  S3 bucket for the storage object
    - `PACKSWITCH_S3_KEY`:     S3 key (path) for the storage object
    - `PACKSWITCH_FERNET_KEY`: urlsafe base64-encoded key for Fernet
    """

    def __init__(
        self,
        *,
        s3: Optional[object] = None,
        bucket: str,
        key: str,
        fernet_key: str | bytes | None = None,
        region_name: Optional[str] = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        if max_attempts <= 0:
            raise ValueError("max_attempts must be > 0")
        self._s3 = s3 or boto3.client("s3", region_name=region_name)
        self._obj = S3ObjectRef(bucket=bucket, key=key)
        self._fernet = _to_fernet(fernet_key) if fernet_key else None
        self._max_attempts = max_attempts

    # -------- Construction helpers --------
    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "S3Storage":
        env = os.environ if environ is None else environ
        bucket = env.get(ENV_BUCKET)
        key = env.get(ENV_KEY)
        if not bucket or not key:
            missing = [name for name, val in [(ENV_BUCKET, bucket), (ENV_KEY, key)] if not val]
            raise RuntimeError(
                f"Missing required environment variables for S3 storage: {', '.join(missing)}"
            )
        return cls(
            bucket=bucket,
            key=key,
            fernet_key=env.get(ENV_FERNET_KEY) or None,
            region_name=env.get(ENV_REGION) or None,
        )

    # -------- Document operations --------
    def read(self) -> Tuple[StoredValues, Optional[str]]:
        """Read (and decrypt) the stored document.

        Returns: (document, etag)
        - If the object does not exist, returns (StoredValues.empty(), None).
        Raises:
        - StorageError if decryption fails or content is not a valid document.
        - botocore.exceptions.ClientError for other S3 issues.
        """
        try:
            resp = self._s3.get_object(Bucket=self._obj.bucket, Key=self._obj.key)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            if code in ("NoSuchKey", "404"):
                return (StoredValues.empty(), None)
            raise

        body = resp["Body"].read()
        etag = resp.get("ETag")  # usually quoted string
        if self._fernet is not None:
            try:
                body = self._fernet.decrypt(body)
            except InvalidToken as ex:
                raise StorageError("Failed to decrypt stored values: invalid Fernet token") from ex

        try:
            doc = _load_values_json(body)
        except Exception as ex:
            raise StorageError("Failed to parse stored values JSON") from ex

        return (doc, etag)

    def _encode(self, doc: StoredValues) -> bytes:
        payload = _dump_values_json(doc)
        if self._fernet is not None:
            payload = self._fernet.encrypt(payload)
        return payload

    def _put(self, key: str, payload: bytes) -> str:
        resp = self._s3.put_object(
            Bucket=self._obj.bucket,
            Key=key,
            Body=payload,
            ContentType="application/octet-stream",
        )
        return str(resp.get("ETag"))

    def _swap_if_unchanged(self, payload: bytes, etag: str) -> bool:
        """Replace the document only if its ETag is still `etag`.

        PutObject has no If-Match, so the payload is staged under a temporary
        key and copied over the document with an If-Match precondition.
        Returns False when another writer changed the document first.
        """
        staged = f"{self._obj.key}.tmp-{uuid4().hex}"
        self._put(staged, payload)
        try:
            self._s3.copy_object(
                Bucket=self._obj.bucket,
                Key=self._obj.key,
                CopySource={"Bucket": self._obj.bucket, "Key": staged},
                IfMatch=etag,
                MetadataDirective="COPY",
            )
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in ("PreconditionFailed", "412"):
                return False
            raise
        finally:
            try:
                self._s3.delete_object(Bucket=self._obj.bucket, Key=staged)
            except ClientError:
                # a stale staged object is harmless
                pass
        return True

    def write(self, doc: StoredValues) -> str:
        """Unconditionally replace the whole document; returns the new ETag."""
        return self._put(self._obj.key, self._encode(doc))

    # -------- KeyValueStorage --------
    def get(self, key: str) -> Optional[str]:
        doc, _ = self.read()
        return doc.values.get(key)

    def set(self, key: str, value: str) -> None:
        """Read-modify-write `key`, retrying when a concurrent writer wins the swap."""
        for _ in range(self._max_attempts):
            doc, etag = self.read()
            if doc.values.get(key) == value:
                return
            doc.values[key] = value
            payload = self._encode(doc)
            if etag is None:
                self._put(self._obj.key, payload)
                return
            if self._swap_if_unchanged(payload, etag):
                return
        raise OptimisticLockError(
            f"s3://{self._obj.bucket}/{self._obj.key} kept changing; gave up after {self._max_attempts} attempts"
        )
