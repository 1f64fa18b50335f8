"""S3-compatible object storage for narration audio."""

import logging
from pathlib import PurePosixPath
from urllib.parse import urlparse

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from speak_docs.constants import (
    AUDIO_CONTENT_TYPE,
    AUDIO_EXTENSION,
    DEFAULT_PATH_PREFIX,
    DEFAULT_S3_REGION,
    S3_DELETE_BATCH_SIZE,
)

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """An object store request failed or was partially rejected."""


def slug_from_path(doc_path: str) -> str:
    """Stable slug for a document: last two path segments, extension dropped.

    "guides/setup/install.mdx" -> "setup-install"
    """
    path = PurePosixPath(doc_path.replace("\\", "/"))
    parts = [p for p in path.with_suffix("").parts if p not in ("", ".", "/")]
    return "-".join(parts[-2:]).lower()


class S3Storage:
    """Thin wrapper over a boto3 S3 client with the narration key layout."""

    def __init__(
        self,
        bucket: str,
        public_url: str,
        path_prefix: str = DEFAULT_PATH_PREFIX,
        region: str = DEFAULT_S3_REGION,
        endpoint: str | None = None,
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
        branch: str | None = None,
        client=None,
    ):
        self.bucket = bucket
        self.public_url = public_url.rstrip("/")
        self.path_prefix = path_prefix.strip("/")
        self.branch = branch
        if client is None:
            client = boto3.client(
                "s3",
                region_name=region,
                endpoint_url=endpoint or None,
                aws_access_key_id=access_key_id,
                aws_secret_access_key=secret_access_key,
            )
        self.client = client

    @property
    def prefix(self) -> str:
        """Key prefix under which this run stores and lists audio."""
        parts = [self.path_prefix]
        if self.branch:
            parts.append(self.branch)
        return "/".join(p for p in parts if p) + "/"

    def key_for(self, doc_path: str, voice_id: str) -> str:
        return f"{self.prefix}{slug_from_path(doc_path)}/{voice_id}{AUDIO_EXTENSION}"

    def public_url_for(self, key: str) -> str:
        return f"{self.public_url}/{key}"

    def key_from_url(self, url: str) -> str:
        """Map a public audio URL back to its storage key."""
        if self.public_url and url.startswith(self.public_url + "/"):
            return url[len(self.public_url) + 1:]
        return urlparse(url).path.lstrip("/")

    def put_object(self, key: str, data: bytes, content_type: str = AUDIO_CONTENT_TYPE) -> str:
        """Upload bytes and return the public URL."""
        try:
            self.client.put_object(Bucket=self.bucket, Key=key, Body=data, ContentType=content_type)
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Upload of {key} failed: {e}") from e
        logger.debug("Uploaded s3://%s/%s (%d bytes)", self.bucket, key, len(data))
        return self.public_url_for(key)

    def list_objects(self, prefix: str | None = None) -> list[str]:
        """All audio keys under prefix, following continuation tokens."""
        if prefix is None:
            prefix = self.prefix
        keys = []
        paginator = self.client.get_paginator("list_objects_v2")
        try:
            for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
                for obj in page.get("Contents", []):
                    if obj["Key"].endswith(AUDIO_EXTENSION):
                        keys.append(obj["Key"])
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Listing {prefix} failed: {e}") from e
        return keys

    def delete_objects(self, keys: list[str]) -> int:
        """Delete keys in batches. Returns the number deleted."""
        deleted = 0
        for i in range(0, len(keys), S3_DELETE_BATCH_SIZE):
            batch = keys[i:i + S3_DELETE_BATCH_SIZE]
            try:
                response = self.client.delete_objects(
                    Bucket=self.bucket,
                    Delete={"Objects": [{"Key": k} for k in batch], "Quiet": True},
                )
            except (BotoCoreError, ClientError) as e:
                raise StorageError(f"Delete request failed: {e}") from e
            errors = response.get("Errors", [])
            if errors:
                first = errors[0]
                raise StorageError(
                    f"{len(errors)} key(s) not deleted, e.g. {first.get('Key')}: {first.get('Message')}"
                )
            deleted += len(batch)
        return deleted
