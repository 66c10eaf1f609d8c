"""
Embedding 向量化服务

文本走 OpenAI 兼容的 embeddings 接口，图片走 Voyage 多模态 embeddings 接口
"""

import base64
from typing import List, Optional, Sequence, Union

import httpx
import openai
from openai import AsyncOpenAI
from loguru import logger

from film_rag.core.config import settings
from film_rag.core.errors import ProviderError, RateLimitError
from film_rag.rag.gateways.base import ImageEmbedder, TextEmbedder, Vector
from film_rag.rag.retry import retry_on_rate_limit

SUPPORTED_IMAGE_MIMES = ("image/jpeg", "image/png", "image/webp", "image/gif")
DEFAULT_IMAGE_MIME = "image/jpeg"


def normalize_image_mime(mime_type: Optional[str]) -> str:
    """归一化为 provider 支持的 MIME，未知类型回退到 image/jpeg"""
    if not mime_type:
        return DEFAULT_IMAGE_MIME
    mime = mime_type.split(";")[0].strip().lower()
    if mime == "image/jpg":
        return DEFAULT_IMAGE_MIME
    if mime in SUPPORTED_IMAGE_MIMES:
        return mime
    return DEFAULT_IMAGE_MIME


def to_data_url(data: bytes, mime_type: str) -> str:
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def create_openai_client(
    api_key: str,
    base_url: Optional[str] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> AsyncOpenAI:
    """
    创建 OpenAI 兼容客户端

    关闭 SDK 自带的重试（max_retries=0），429 只由 retry_on_rate_limit 重试一次
    """
    client_params = {"api_key": api_key, "max_retries": 0}
    if base_url:
        client_params["base_url"] = base_url
    if http_client is not None:
        client_params["http_client"] = http_client
    return AsyncOpenAI(**client_params)


class EmbeddingService(TextEmbedder, ImageEmbedder):
    """
    向量化网关

    - embed_text: 单条或批量文本，一次请求，结果与输入同序
    - embed_image: 图片二进制 + MIME，失败返回 None
    """

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        text_model: Optional[str] = None,
        multimodal_url: Optional[str] = None,
        multimodal_model: Optional[str] = None,
        multimodal_api_key: Optional[str] = None,
        cooldown: Optional[float] = None,
    ):
        if client is None:
            # 如果配置了自定义 API 端点
            if settings.OPENAI_API_BASE:
                logger.info(f"使用自定义 Embedding API 端点: {settings.OPENAI_API_BASE}")
            client = create_openai_client(settings.OPENAI_API_KEY, settings.OPENAI_API_BASE)

        self.client = client
        self.http_client = http_client or httpx.AsyncClient(
            timeout=settings.HTTP_TIMEOUT_SECONDS
        )
        self.text_model = text_model or settings.OPENAI_EMBEDDING_MODEL
        self.multimodal_url = multimodal_url or settings.VOYAGE_MULTIMODAL_URL
        self.multimodal_model = multimodal_model or settings.VOYAGE_MULTIMODAL_MODEL
        self.multimodal_api_key = (
            multimodal_api_key
            if multimodal_api_key is not None
            else settings.VOYAGE_API_KEY
        )
        self.cooldown = cooldown
        logger.info(
            f"[EmbeddingService] 初始化完成: text_model={self.text_model}, "
            f"image_model={self.multimodal_model}"
        )

    async def embed_text(
        self, text: Union[str, Sequence[str]]
    ) -> Union[Vector, List[Vector]]:
        single = isinstance(text, str)
        inputs = [text] if single else list(text)
        if not inputs:
            return []

        logger.debug(f"[EmbeddingService] 文本向量化: batch_size={len(inputs)}")
        vectors = await retry_on_rate_limit(
            self._request_text_embeddings, inputs, cooldown=self.cooldown
        )
        logger.info(
            f"[EmbeddingService] 文本向量化完成: count={len(vectors)}, "
            f"vector_dim={len(vectors[0]) if vectors else 0}"
        )
        return vectors[0] if single else vectors

    async def _request_text_embeddings(self, inputs: List[str]) -> List[Vector]:
        try:
            response = await self.client.embeddings.create(
                input=inputs, model=self.text_model, encoding_format="float"
            )
        except openai.RateLimitError as e:
            raise RateLimitError("embedding", str(e)) from e
        except openai.APIStatusError as e:
            logger.error(f"[EmbeddingService] 文本向量化失败: status={e.status_code}")
            raise ProviderError("embedding", str(e), status_code=e.status_code) from e

        # 按 index 排序，保证与输入同序
        data = sorted(response.data, key=lambda d: d.index)
        if len(data) != len(inputs):
            raise ProviderError(
                "embedding", f"返回数量不一致: expected={len(inputs)}, got={len(data)}"
            )
        return [list(d.embedding) for d in data]

    async def embed_image(self, data: bytes, mime_type: str) -> Optional[Vector]:
        if not data:
            logger.warning("[EmbeddingService] 图片为空，跳过向量化")
            return None

        mime = normalize_image_mime(mime_type)
        payload = {
            "inputs": [
                {
                    "content": [
                        {"type": "image_base64", "image_base64": to_data_url(data, mime)}
                    ]
                }
            ],
            "model": self.multimodal_model,
        }

        try:
            vector = await retry_on_rate_limit(
                self._request_image_embedding, payload, cooldown=self.cooldown
            )
        except (ProviderError, httpx.HTTPError) as e:
            logger.warning(f"[EmbeddingService] 图片向量化失败，返回 None: {e}")
            return None

        if not vector:
            logger.warning("[EmbeddingService] 图片向量为空，返回 None")
            return None

        logger.info(f"[EmbeddingService] 图片向量化完成: mime={mime}, vector_dim={len(vector)}")
        return vector

    async def _request_image_embedding(self, payload: dict) -> Vector:
        response = await self.http_client.post(
            self.multimodal_url,
            headers={"Authorization": f"Bearer {self.multimodal_api_key}"},
            json=payload,
        )
        if response.status_code == 429:
            raise RateLimitError("multimodal-embedding", response.text[:200])
        if response.is_error:
            raise ProviderError(
                "multimodal-embedding",
                response.text[:200],
                status_code=response.status_code,
            )

        try:
            items = response.json().get("data") or []
            if not items:
                return []
            return [float(x) for x in items[0].get("embedding") or []]
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise ProviderError(
                "multimodal-embedding", f"响应格式错误: {e}; body={response.text[:200]}"
            ) from e

    async def close(self):
        await self.http_client.aclose()
