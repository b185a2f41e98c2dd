from __future__ import annotations

import json
import logging
from typing import Any, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ..config import settings

logger = logging.getLogger(__name__)

MISSING_CODES = {"404", "NoSuchKey", "NotFound"}


class CloudSyncError(Exception):
    """The cloud replica could not be read or written."""


def _strip_revision(doc: dict) -> dict:
    # revisions are local to one backend
    return {k: v for k, v in doc.items() if k != "_rev"}


class CloudReplica:
    """The upstream copy of the document collection, one JSON array in S3."""

    def __init__(self, client: Any, bucket: str, key: str) -> None:
        self.client = client
        self.bucket = bucket
        self.key = key

    @property
    def uri(self) -> str:
        return f"s3://{self.bucket}/{self.key}"

    def fetch(self) -> list[dict]:
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=self.key)
            raw = response["Body"].read()
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code")
            if code in MISSING_CODES:
                logger.info("Cloud replica %s does not exist yet", self.uri)
                return []
            raise CloudSyncError(f"reading {self.uri} failed: {exc}") from exc
        except BotoCoreError as exc:
            raise CloudSyncError(f"reading {self.uri} failed: {exc}") from exc

        try:
            data = json.loads(raw)
        except ValueError as exc:
            raise CloudSyncError(f"{self.uri} is not valid JSON") from exc
        # accept a bare array or {"docs": [...]}
        if isinstance(data, dict):
            data = data.get("docs", [])
        if not isinstance(data, list):
            raise CloudSyncError(f"{self.uri} does not hold a document array")
        return [doc for doc in data if isinstance(doc, dict)]

    def store(self, docs: list[dict]) -> None:
        body = json.dumps([_strip_revision(d) for d in docs], sort_keys=True).encode("utf-8")
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=self.key,
                Body=body,
                ContentType="application/json",
            )
        except (ClientError, BotoCoreError) as exc:
            raise CloudSyncError(f"writing {self.uri} failed: {exc}") from exc

    def count(self) -> int:
        return len(self.fetch())


_replica: Optional[CloudReplica] = None

def get_replica() -> Optional[CloudReplica]:
    """Shared replica for the configured bucket, or None when cloud sync is off."""
    global _replica
    if not settings.CLOUD_BUCKET:
        return None
    if _replica is None:
        session = boto3.session.Session(region_name=settings.AWS_REGION)
        client = session.client("s3", config=Config(signature_version="s3v4"))
        _replica = CloudReplica(client, settings.CLOUD_BUCKET, settings.CLOUD_KEY)
    return _replica
