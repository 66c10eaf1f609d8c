"""
重排模型实现

文本 Cross-Encoder（Voyage / TEI / Mock）与多模态重排（Jina）
"""

from typing import Any, Dict, List, Optional

import httpx
from loguru import logger

from film_rag.core.config import settings
from film_rag.core.errors import RateLimitError
from film_rag.rag.gateways.base import (
    MultimodalDocument,
    MultimodalReranker,
    RerankHit,
    TextReranker,
)
from film_rag.rag.retry import retry_on_rate_limit


class HttpRerankModel:
    """
    HTTP 重排模型基类

    统一处理：空输入短路、429 转 RateLimitError 并重试一次、其他 HTTP 错误降级为空列表
    """

    provider = "rerank"

    def __init__(
        self,
        url: str,
        model_name: str,
        api_key: str = "",
        http_client: Optional[httpx.AsyncClient] = None,
        cooldown: Optional[float] = None,
    ):
        self.url = url
        self.model_name = model_name
        self.api_key = api_key
        self.http_client = http_client or httpx.AsyncClient(
            timeout=settings.HTTP_TIMEOUT_SECONDS
        )
        self.cooldown = cooldown
        logger.info(f"[{self.__class__.__name__}] 初始化: model={model_name}, url={url}")

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def _rerank(self, query: str, documents: List[Any], limit: int) -> List[RerankHit]:
        if not query or not query.strip() or not documents:
            return []

        body = self._build_body(query.strip(), documents, min(limit, len(documents)))
        logger.info(
            f"[{self.__class__.__name__}] 重排请求: query_len={len(query)}, "
            f"docs={len(documents)}, limit={min(limit, len(documents))}"
        )
        try:
            return await retry_on_rate_limit(self._post, body, cooldown=self.cooldown)
        except httpx.HTTPError as e:
            logger.error(f"[{self.__class__.__name__}] 调用失败: {e}")
            return []

    async def _post(self, body: Dict[str, Any]) -> List[RerankHit]:
        response = await self.http_client.post(self.url, headers=self._headers(), json=body)
        if response.status_code == 429:
            raise RateLimitError(self.provider, response.text[:200])
        if response.is_error:
            logger.error(
                f"[{self.__class__.__name__}] API 错误: status={response.status_code}, "
                f"body={response.text[:200]}"
            )
            return []
        try:
            return self._parse(response.json())
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.error(
                f"[{self.__class__.__name__}] 响应格式错误: {e}, body={response.text[:200]}"
            )
            return []

    def _build_body(self, query: str, documents: List[Any], limit: int) -> Dict[str, Any]:
        raise NotImplementedError

    def _parse(self, payload: Any) -> List[RerankHit]:
        raise NotImplementedError

    async def close(self):
        await self.http_client.aclose()


class VoyageTextReranker(HttpRerankModel, TextReranker):
    """
    Voyage rerank 接口

    请求: {query, documents, model, top_k}
    返回: {"data": [{"index": 2, "relevance_score": 0.9}, ...]}
    """

    provider = "voyage-rerank"

    def __init__(self, api_key: Optional[str] = None, url: Optional[str] = None,
                 model_name: Optional[str] = None, **kwargs):
        super().__init__(
            url=url or settings.VOYAGE_RERANK_URL,
            model_name=model_name or settings.VOYAGE_RERANK_MODEL,
            api_key=api_key if api_key is not None else settings.VOYAGE_API_KEY,
            **kwargs,
        )

    async def rerank(self, query: str, documents: List[str], top_k: int) -> List[RerankHit]:
        return await self._rerank(query, documents, top_k)

    def _build_body(self, query, documents, limit):
        return {
            "query": query,
            "documents": documents,
            "model": self.model_name,
            "top_k": limit,
        }

    def _parse(self, payload):
        data = payload.get("data") or []
        hits = [
            RerankHit(index=int(r["index"]), relevance_score=float(r.get("relevance_score") or 0.0))
            for r in data
        ]
        return sorted(hits, key=lambda h: h.relevance_score, reverse=True)


class TEITextReranker(HttpRerankModel, TextReranker):
    """
    基于 TEI (Text Embeddings Inference) 的重排模型

    请求: {query, texts}
    返回: [{"index": 0, "score": 0.95}, ...]，本地截断到 top_k
    """

    provider = "tei-rerank"

    def __init__(self, endpoint: Optional[str] = None, model_name: str = "bge-reranker-base", **kwargs):
        endpoint = (endpoint or settings.TEI_ENDPOINT).rstrip("/")
        super().__init__(url=f"{endpoint}/rerank", model_name=model_name, **kwargs)

    async def rerank(self, query: str, documents: List[str], top_k: int) -> List[RerankHit]:
        hits = await self._rerank(query, documents, top_k)
        return hits[: max(0, min(top_k, len(documents)))]

    def _build_body(self, query, documents, limit):
        return {"query": query, "texts": documents}

    def _parse(self, payload):
        hits = [
            RerankHit(index=int(r["index"]), relevance_score=float(r["score"]))
            for r in payload or []
        ]
        return sorted(hits, key=lambda h: h.relevance_score, reverse=True)


class MockTextReranker(TextReranker):
    """
    Mock 重排模型

    用于开发环境：按查询词在文档中的命中比例打分，结果确定
    """

    model_name = "mock-reranker"

    def __init__(self):
        logger.info("[MockTextReranker] 初始化完成")

    async def rerank(self, query: str, documents: List[str], top_k: int) -> List[RerankHit]:
        if not query or not query.strip() or not documents:
            return []

        terms = {t for t in query.lower().split() if t}
        hits = []
        for index, doc in enumerate(documents):
            words = set(doc.lower().split())
            overlap = len(terms & words) / len(terms) if terms else 0.0
            hits.append(RerankHit(index=index, relevance_score=round(overlap, 6)))

        hits.sort(key=lambda h: h.relevance_score, reverse=True)
        logger.debug(f"[MockTextReranker] 返回模拟分数: docs={len(documents)}")
        return hits[: min(top_k, len(documents))]


class JinaMultimodalReranker(HttpRerankModel, MultimodalReranker):
    """
    Jina 多模态重排

    文档可以是 {"text": ...} 或 {"image": base64 data URL / HTTP URL}，查询只能是文本
    """

    provider = "jina-rerank"

    def __init__(self, api_key: Optional[str] = None, url: Optional[str] = None,
                 model_name: Optional[str] = None, **kwargs):
        super().__init__(
            url=url or settings.JINA_RERANK_URL,
            model_name=model_name or settings.JINA_RERANK_MODEL,
            api_key=api_key if api_key is not None else settings.JINA_API_KEY,
            **kwargs,
        )

    async def rerank(
        self, query: str, documents: List[MultimodalDocument], top_n: int
    ) -> List[RerankHit]:
        return await self._rerank(query, documents, top_n)

    def _build_body(self, query, documents, limit):
        return {
            "query": query,
            "documents": documents,
            "model": self.model_name,
            "top_n": limit,
        }

    def _parse(self, payload):
        results = payload.get("results") or []
        hits = [
            RerankHit(index=int(r["index"]), relevance_score=float(r.get("relevance_score") or 0.0))
            for r in results
        ]
        return sorted(hits, key=lambda h: h.relevance_score, reverse=True)
