"""
封面图读取

http(s) URL 直接下载；其余按 MinIO 对象 key 读取
"""

import asyncio
from typing import Optional, Tuple
from urllib.parse import urlparse

import httpx
from loguru import logger
from minio import Minio

from film_rag.core.config import Settings, settings
from film_rag.rag.gateways.base import ImageFetcher


def mime_from_url(url: str) -> str:
    """根据 URL 后缀推断 MIME（如 .jpg -> image/jpeg）"""
    if not url or not isinstance(url, str):
        return "image/jpeg"
    lower = url.split("?")[0].lower()
    if lower.endswith(".png"):
        return "image/png"
    if lower.endswith(".webp"):
        return "image/webp"
    if lower.endswith(".gif"):
        return "image/gif"
    return "image/jpeg"


class ImageStore(ImageFetcher):
    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        minio_client: Optional[Minio] = None,
        bucket_name: Optional[str] = None,
    ):
        self.http_client = http_client or httpx.AsyncClient(
            timeout=settings.HTTP_TIMEOUT_SECONDS, follow_redirects=True
        )
        self.minio_client = minio_client
        self.bucket_name = bucket_name or settings.MINIO_BUCKET_NAME

    @classmethod
    def from_settings(
        cls, config: Settings = settings, http_client: Optional[httpx.AsyncClient] = None
    ) -> "ImageStore":
        minio_client = None
        if config.MINIO_ENDPOINT and config.MINIO_ACCESS_KEY:
            minio_client = Minio(
                config.MINIO_ENDPOINT,
                access_key=config.MINIO_ACCESS_KEY,
                secret_key=config.MINIO_SECRET_KEY,
                secure=config.MINIO_SECURE,
            )
        return cls(
            http_client=http_client,
            minio_client=minio_client,
            bucket_name=config.MINIO_BUCKET_NAME,
        )

    async def fetch(self, url: str) -> Tuple[bytes, str]:
        if not url:
            raise ValueError("封面图地址为空")

        scheme = urlparse(url).scheme.lower()
        if scheme in ("http", "https"):
            return await self._fetch_http(url)
        return await self._fetch_object(url)

    async def _fetch_http(self, url: str) -> Tuple[bytes, str]:
        response = await self.http_client.get(url, follow_redirects=True)
        response.raise_for_status()
        content_type = response.headers.get("content-type", "")
        mime = content_type.split(";")[0].strip() if content_type.startswith("image/") else mime_from_url(url)
        logger.debug(f"[ImageStore] 下载完成: url={url}, size={len(response.content)}")
        return response.content, mime

    async def _fetch_object(self, key: str) -> Tuple[bytes, str]:
        if self.minio_client is None:
            raise RuntimeError("MinIO 未配置，无法读取对象: " + key)
        data = await asyncio.to_thread(self._read_object, key.lstrip("/"))
        return data, mime_from_url(key)

    def _read_object(self, key: str) -> bytes:
        response = self.minio_client.get_object(self.bucket_name, key)
        try:
            return response.read()
        finally:
            response.close()
            response.release_conn()

    async def close(self):
        await self.http_client.aclose()
