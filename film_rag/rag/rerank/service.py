"""
重排编排

选择重排策略、构建各 provider 需要的文档格式，并把重排结果映射回候选列表。
重排是增强步骤：provider 失败或返回空时原样返回候选列表，绝不返回空结果
"""

import asyncio
from typing import List, Optional, Sequence, Union

import httpx
from loguru import logger

from film_rag.core.errors import RagError
from film_rag.rag.gateways.base import (
    ImageFetcher,
    MultimodalDocument,
    MultimodalReranker,
    RerankHit,
    TextReranker,
)
from film_rag.rag.gateways.embedding import normalize_image_mime, to_data_url
from film_rag.rag.models.candidate import Candidate, QueryType
from film_rag.rag.rerank.policy import RerankStrategy, select_rerank_strategy

# Jina 的查询只支持文本，纯图片查询用这个默认查询
DEFAULT_IMAGE_RERANK_QUERY = "film cover image"


class RerankService:
    """
    重排编排服务

    流程：
    1. 按决策表选择策略（TEXT / MULTIMODAL / NONE）
    2. 构建重排文档（纯文本，或 base64 图片 + 逐条文本降级）
    3. 调用重排网关
    4. 按返回的 index 重排候选，score 替换为 relevance_score
    """

    def __init__(
        self,
        text_reranker: Optional[TextReranker] = None,
        multimodal_reranker: Optional[MultimodalReranker] = None,
        image_fetcher: Optional[ImageFetcher] = None,
        rerank_by_text: Optional[bool] = None,
        rerank_by_image: Optional[bool] = None,
    ):
        """
        初始化重排服务

        Args:
            text_reranker: 文本 Cross-Encoder（可选）
            multimodal_reranker: 多模态重排（可选）
            image_fetcher: 封面图读取（多模态重排需要）
            rerank_by_text: 是否启用文本重排（默认：配置了 text_reranker 即启用）
            rerank_by_image: 是否启用多模态重排（默认：配置了 multimodal_reranker 和 image_fetcher 即启用）
        """
        self.text_reranker = text_reranker
        self.multimodal_reranker = multimodal_reranker
        self.image_fetcher = image_fetcher

        text_available = text_reranker is not None
        image_available = multimodal_reranker is not None and image_fetcher is not None
        self.rerank_by_text = text_available if rerank_by_text is None else (rerank_by_text and text_available)
        self.rerank_by_image = image_available if rerank_by_image is None else (rerank_by_image and image_available)

        logger.info(
            f"[RerankService] 初始化: by_text={self.rerank_by_text}, by_image={self.rerank_by_image}"
        )

    def select_strategy(
        self, query_type: QueryType, has_explicit_text_query: bool
    ) -> RerankStrategy:
        return select_rerank_strategy(
            query_type,
            rerank_by_text=self.rerank_by_text,
            rerank_by_image=self.rerank_by_image,
            has_explicit_text_query=has_explicit_text_query,
        )

    async def rerank(
        self,
        query: str,
        candidates: List[Candidate],
        k: int,
        query_type: QueryType,
        has_explicit_text_query: bool,
    ) -> List[Candidate]:
        """
        对候选文档进行重排

        Args:
            query: 文本查询（图片查询时为调用方附带的问题，可为空）
            candidates: 候选文档列表
            k: 期望返回数量
            query_type: 查询类型
            has_explicit_text_query: 调用方是否提供了文本问题

        Returns:
            重排后的新列表；不重排或失败时返回原列表的副本
        """
        if not candidates:
            logger.warning("[RerankService] 候选列表为空，直接返回")
            return []

        strategy = self.select_strategy(query_type, has_explicit_text_query)
        logger.info(
            f"[RerankService] 选择策略: query_type={QueryType(query_type).value}, "
            f"has_text={has_explicit_text_query}, strategy={strategy.value}"
        )

        if strategy == RerankStrategy.NONE:
            return list(candidates)

        top_k = min(k, len(candidates))
        try:
            if strategy == RerankStrategy.TEXT:
                hits = await self._rerank_by_text(query, candidates, top_k)
            else:
                hits = await self._rerank_by_image(query, candidates, top_k)
        except (RagError, httpx.HTTPError) as e:
            logger.warning(f"[RerankService] 重排失败，返回原始候选列表: {e}")
            return list(candidates)

        return apply_rerank_hits(candidates, hits, top_k)

    async def _rerank_by_text(
        self, query: str, candidates: List[Candidate], top_k: int
    ) -> List[RerankHit]:
        if self.text_reranker is None:
            logger.warning("[RerankService] 未配置文本重排模型，跳过")
            return []
        documents = build_text_documents(candidates)
        return await self.text_reranker.rerank(query, documents, top_k)

    async def _rerank_by_image(
        self, query: str, candidates: List[Candidate], top_k: int
    ) -> List[RerankHit]:
        documents = await self.build_multimodal_documents(candidates)
        return await self.multimodal_reranker.rerank(
            query or DEFAULT_IMAGE_RERANK_QUERY, documents, top_k
        )

    async def build_multimodal_documents(
        self, candidates: Sequence[Candidate]
    ) -> List[MultimodalDocument]:
        """并发拉取所有封面图，结果与候选顺序一致"""
        return list(
            await asyncio.gather(*(self._multimodal_document(c) for c in candidates))
        )

    async def _multimodal_document(self, candidate: Candidate) -> MultimodalDocument:
        if not candidate.cover_image:
            return {"text": candidate.as_text_document()}
        try:
            data, mime = await self.image_fetcher.fetch(candidate.cover_image)
            if not data:
                raise ValueError("封面图内容为空")
            return {"image": to_data_url(data, normalize_image_mime(mime))}
        except Exception as e:
            # 单条降级为文本，不影响其他候选
            logger.warning(
                f"[RerankService] 封面图读取失败，使用文本: id={candidate.id}, "
                f"url={candidate.cover_image}, error={e}"
            )
            return {"text": candidate.as_text_document()}


def build_text_documents(candidates: Sequence[Candidate]) -> List[str]:
    return [c.as_text_document() for c in candidates]


def apply_rerank_hits(
    candidates: Sequence[Candidate],
    hits: Union[Sequence[RerankHit], None],
    top_k: int,
) -> List[Candidate]:
    """
    把重排结果映射回候选列表

    - hits 为空（provider 失败）时返回原列表副本，保证不会清空结果
    - 忽略越界或重复的 index
    """
    if not hits:
        logger.warning("[RerankService] 重排结果为空，返回原始候选列表")
        return list(candidates)

    reranked = []
    seen = set()
    for hit in hits:
        if hit.index in seen or not 0 <= hit.index < len(candidates):
            logger.debug(f"[RerankService] 忽略无效 index: {hit.index}")
            continue
        seen.add(hit.index)
        reranked.append(candidates[hit.index].with_score(hit.relevance_score))
        if len(reranked) >= top_k:
            break

    if not reranked:
        return list(candidates)

    logger.info(
        f"[RerankService] 重排完成: results={len(reranked)}, top_score={reranked[0].score:.4f}"
    )
    return reranked
