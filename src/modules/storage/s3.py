"""S3 document storage for generated PDFs."""

from __future__ import annotations

import asyncio
import logging

import boto3
import httpx

from src.config import settings

logger = logging.getLogger(__name__)


class DocumentStorage:
    """Public-read object storage keyed by path, fetched back over HTTPS."""

    def __init__(
        self,
        client=None,
        bucket: str | None = None,
        region: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.bucket = bucket or settings.s3_bucket_name
        self.region = region or settings.aws_region
        self._client = client
        self._transport = transport

    def _get_client(self):
        if self._client is None:
            self._client = boto3.client(
                "s3",
                region_name=self.region,
                aws_access_key_id=settings.aws_access_key_id or None,
                aws_secret_access_key=settings.aws_secret_access_key or None,
            )
        return self._client

    def public_url(self, key: str) -> str:
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    async def store(self, data: bytes, key: str, content_type: str = "application/pdf") -> str:
        """Upload ``data`` under ``key`` and return its public URL."""
        client = self._get_client()
        await asyncio.to_thread(
            client.put_object,
            Bucket=self.bucket,
            Key=key,
            Body=data,
            ContentType=content_type,
            ACL="public-read",
        )
        logger.info("Stored %d bytes at s3://%s/%s", len(data), self.bucket, key)
        return self.public_url(key)

    async def fetch(self, url: str) -> bytes:
        async with httpx.AsyncClient(
            timeout=settings.courier_request_timeout_seconds, transport=self._transport
        ) as client:
            response = await client.get(url)
            response.raise_for_status()
            return response.content
