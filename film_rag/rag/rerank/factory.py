"""
重排服务配置工厂

根据配置创建文本 / 多模态重排模型
"""

from typing import Optional

import httpx
from loguru import logger

from film_rag.core.config import Settings, settings as default_settings
from film_rag.rag.gateways.base import ImageFetcher, MultimodalReranker, TextReranker
from film_rag.rag.gateways.rerank import (
    JinaMultimodalReranker,
    MockTextReranker,
    TEITextReranker,
    VoyageTextReranker,
)
from film_rag.rag.rerank.service import RerankService


def create_text_reranker(
    settings: Settings = default_settings,
    http_client: Optional[httpx.AsyncClient] = None,
) -> Optional[TextReranker]:
    """
    创建文本重排模型

    Returns:
        重排模型实例，禁用时返回 None
    """
    if not settings.RERANK_BY_TEXT:
        logger.info("[RerankFactory] 文本重排已禁用")
        return None

    provider = settings.RERANK_TEXT_PROVIDER.lower()
    cooldown = settings.RATE_LIMIT_COOLDOWN_SECONDS

    if provider == "voyage":
        if not settings.VOYAGE_API_KEY:
            logger.warning("[RerankFactory] 缺少 VOYAGE_API_KEY，文本重排不可用")
            return None
        return VoyageTextReranker(
            api_key=settings.VOYAGE_API_KEY,
            url=settings.VOYAGE_RERANK_URL,
            model_name=settings.VOYAGE_RERANK_MODEL,
            http_client=http_client,
            cooldown=cooldown,
        )

    elif provider == "tei":
        logger.info(f"[RerankFactory] 创建 TEI 模型: endpoint={settings.TEI_ENDPOINT}")
        return TEITextReranker(
            endpoint=settings.TEI_ENDPOINT, http_client=http_client, cooldown=cooldown
        )

    elif provider == "mock":
        logger.info("[RerankFactory] 创建 Mock 模型（测试模式）")
        return MockTextReranker()

    elif provider == "none":
        return None

    else:
        raise ValueError(f"不支持的重排模型类型: {provider}")


def create_multimodal_reranker(
    settings: Settings = default_settings,
    http_client: Optional[httpx.AsyncClient] = None,
) -> Optional[MultimodalReranker]:
    if not settings.RERANK_BY_IMAGE:
        logger.info("[RerankFactory] 多模态重排已禁用")
        return None
    if not settings.JINA_API_KEY:
        logger.warning("[RerankFactory] 缺少 JINA_API_KEY，多模态重排不可用")
        return None
    return JinaMultimodalReranker(
        api_key=settings.JINA_API_KEY,
        url=settings.JINA_RERANK_URL,
        model_name=settings.JINA_RERANK_MODEL,
        http_client=http_client,
        cooldown=settings.RATE_LIMIT_COOLDOWN_SECONDS,
    )


def create_rerank_service(
    settings: Settings = default_settings,
    http_client: Optional[httpx.AsyncClient] = None,
    image_fetcher: Optional[ImageFetcher] = None,
) -> RerankService:
    """
    创建重排服务实例

    Example:
        ```python
        rerank_service = create_rerank_service()
        ```
    """
    service = RerankService(
        text_reranker=create_text_reranker(settings, http_client),
        multimodal_reranker=create_multimodal_reranker(settings, http_client),
        image_fetcher=image_fetcher,
    )
    logger.info("[RerankFactory] 重排服务创建完成")
    return service
