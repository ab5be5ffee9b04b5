# src/portfolio_chat/adapters/blob_s3.py
import json
import logging

import boto3
from botocore.config import Config

logger = logging.getLogger(__name__)


class S3BlobStore:
    """JSON get/put against a single S3 bucket."""

    def __init__(self, bucket: str, region: str | None = None, timeout_sec: float = 5, max_retries: int = 2, client=None):
        if not bucket:
            raise ValueError("bucket is required")
        self.bucket = bucket
        self.client = client or boto3.client(
            "s3",
            region_name=region,
            config=Config(
                connect_timeout=timeout_sec,
                read_timeout=timeout_sec,
                retries={"max_attempts": max_retries, "mode": "standard"},
            ),
        )

    def get_json(self, key: str):
        logger.info("[s3] get s3://%s/%s", self.bucket, key)
        obj = self.client.get_object(Bucket=self.bucket, Key=key)
        return json.loads(obj["Body"].read().decode("utf-8"))

    def put_json(self, key: str, value) -> None:
        logger.info("[s3] put s3://%s/%s", self.bucket, key)
        self.client.put_object(
            Bucket=self.bucket,
            Key=key,
            Body=json.dumps(value, ensure_ascii=False).encode("utf-8"),
            ContentType="application/json",
        )
