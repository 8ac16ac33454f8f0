"""
S3-backed checkpoint source.

One object per checkpoint, as published by a full node:
    {prefix}/{seq:010d}.json           certificate
    {prefix}/{seq:010d}.contents.json  checkpoint contents (optional)

Zero-padded sequence numbers keep lexicographic key order equal to numeric
order. Credentials come from the environment (AWS_ACCESS_KEY_ID,
AWS_SECRET_ACCESS_KEY); endpoint_url points at MinIO/localstack.
"""

import os
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..checkpoint.model import CheckpointCertificate, CheckpointContents
from ..core.errors import CheckpointNotAvailable, SourceUnavailable
from .source import CheckpointSource

_MISSING_CODES = ("NoSuchKey", "404", "NotFound")


class S3CheckpointSource(CheckpointSource):
    """
    Read-only checkpoint source over an S3 bucket.

    Paginator: list_objects_v2 returns at most 1000 keys per call, so
    latest_sequence_number() walks every page.
    """

    def __init__(
        self,
        bucket: str,
        prefix: str = "checkpoints",
        endpoint_url: Optional[str] = None,
        region: str = "us-east-1",
    ) -> None:
        """
        Args:
            bucket: S3 bucket name
            prefix: Key prefix for checkpoints
            endpoint_url: S3 endpoint URL (for MinIO, localstack, etc.)
            region: AWS region

        Raises:
            SourceUnavailable: If the bucket is not accessible
        """
        self.bucket = bucket
        self.prefix = prefix.rstrip("/")
        self.endpoint_url = endpoint_url
        self.region = region

        try:
            self.s3_client = boto3.client(
                "s3",
                endpoint_url=endpoint_url,
                region_name=region,
            )
        except (BotoCoreError, ValueError) as e:
            raise SourceUnavailable(f"Failed to create S3 client: {e}") from e

        if os.getenv("LIGHTCLIENT_S3_SKIP_BUCKET_CHECK", "").lower() != "true":
            try:
                self.s3_client.head_bucket(Bucket=bucket)
            except ClientError as e:
                error_code = e.response.get("Error", {}).get("Code", "Unknown")
                raise SourceUnavailable(
                    f"Bucket '{bucket}' not accessible (code: {error_code})"
                ) from e
            except BotoCoreError as e:
                raise SourceUnavailable(f"Bucket '{bucket}' not reachable: {e}") from e

    def _key_for_seq(self, seq: int, suffix: str = ".json") -> str:
        return f"{self.prefix}/{seq:010d}{suffix}"

    def _seq_from_key(self, key: str) -> Optional[int]:
        if not key.startswith(self.prefix + "/"):
            return None
        basename = key[len(self.prefix) + 1:]
        if not basename.endswith(".json") or basename.endswith(".contents.json"):
            return None
        try:
            return int(basename[:-5])
        except ValueError:
            return None

    def _get_body(self, key: str) -> Optional[str]:
        """Object body, or None if the key does not exist."""
        try:
            response = self.s3_client.get_object(Bucket=self.bucket, Key=key)
            return response["Body"].read().decode("utf-8")
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if code in _MISSING_CODES:
                return None
            raise SourceUnavailable(f"Failed to read s3://{self.bucket}/{key}: {e}") from e
        except BotoCoreError as e:
            raise SourceUnavailable(f"Failed to read s3://{self.bucket}/{key}: {e}") from e

    def latest_sequence_number(self) -> Optional[int]:
        try:
            paginator = self.s3_client.get_paginator("list_objects_v2")
            page_iterator = paginator.paginate(Bucket=self.bucket, Prefix=self.prefix + "/")
            latest = None
            for page in page_iterator:
                if "Contents" not in page:
                    continue
                for obj in page["Contents"]:
                    seq = self._seq_from_key(obj["Key"])
                    if seq is not None and (latest is None or seq > latest):
                        latest = seq
            return latest
        except (BotoCoreError, ClientError) as e:
            raise SourceUnavailable(f"Failed to list checkpoints in S3: {e}") from e

    def fetch_certificate(self, sequence_number: int) -> CheckpointCertificate:
        body = self._get_body(self._key_for_seq(sequence_number))
        if body is None:
            raise CheckpointNotAvailable(sequence_number)
        return CheckpointCertificate.from_json(body)

    def fetch_contents(self, sequence_number: int) -> Optional[CheckpointContents]:
        body = self._get_body(self._key_for_seq(sequence_number, ".contents.json"))
        if body is None:
            return None
        return CheckpointContents.from_json(body)
