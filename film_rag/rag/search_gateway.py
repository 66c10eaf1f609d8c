"""
RAG 网关 - 检索层核心入口

三种请求（文本 / 图片 / 混合）各自编排：向量化、召回、融合、重排、生成
"""

import asyncio
import time
from typing import List, Optional

from loguru import logger

from film_rag.core.config import settings
from film_rag.rag.fusion.base import IFusionService
from film_rag.rag.gateways.base import Generator, ImageEmbedder, TextEmbedder
from film_rag.rag.models.candidate import Candidate, Modality, QueryType
from film_rag.rag.models.rag_answer import RagAnswer
from film_rag.rag.models.rag_query import RagQuery
from film_rag.rag.rerank.service import RerankService
from film_rag.rag.strategies.keyword_strategy import LexicalRetriever
from film_rag.rag.strategies.vector_strategy import VectorRetriever

IMAGE_EMBED_FAILED_ANSWER = "Could not process the image. Please try a different image."
DEFAULT_IMAGE_QUESTION = "Which films match this image?"


class RagGateway:
    """
    RAG 网关

    所有外部依赖通过构造函数注入，进程内共享、只读；
    每个请求的中间结果都是新建列表，请求之间没有共享可变状态
    """

    def __init__(
        self,
        text_embedder: TextEmbedder,
        image_embedder: ImageEmbedder,
        vector_retriever: VectorRetriever,
        lexical_retriever: LexicalRetriever,
        fusion_service: IFusionService,
        generator: Generator,
        rerank_service: Optional[RerankService] = None,
        rrf_k: Optional[int] = None,
        default_k: Optional[int] = None,
        max_k: Optional[int] = None,
    ):
        """
        初始化 RAG 网关

        Args:
            text_embedder: 文本向量化
            image_embedder: 图片向量化
            vector_retriever: 向量召回
            lexical_retriever: 关键词召回
            fusion_service: 融合服务
            generator: LLM 生成
            rerank_service: 重排服务（可选）
        """
        self.text_embedder = text_embedder
        self.image_embedder = image_embedder
        self.vector_retriever = vector_retriever
        self.lexical_retriever = lexical_retriever
        self.fusion_service = fusion_service
        self.generator = generator
        self.rerank_service = rerank_service
        self.rrf_k = settings.RRF_K if rrf_k is None else rrf_k
        self.default_k = settings.RAG_DEFAULT_K if default_k is None else default_k
        self.max_k = settings.RAG_MAX_K if max_k is None else max_k

        logger.info(
            f"RagGateway 初始化完成: rerank={'enabled' if rerank_service else 'disabled'}, "
            f"lexical={'enabled' if lexical_retriever.enabled else 'disabled'}"
        )

    def _build_query(self, **kwargs) -> RagQuery:
        k = kwargs.pop("k", None)
        return RagQuery(k=self.default_k if k is None else k, max_k=self.max_k, **kwargs)

    async def ask_text(self, question: str, k: Optional[int] = None) -> RagAnswer:
        """
        文本查询

        流程: 向量化 -> 文本向量召回 -> 重排（可选）-> 生成
        """
        query = self._build_query(text=question, k=k)
        start_time = time.time()
        logger.info(f"[RagGateway] 文本查询: query='{query.text}', k={query.k}")

        query_vector = await self.text_embedder.embed_text(query.text)
        candidates = await self.vector_retriever.retrieve(query_vector, Modality.TEXT, query.k)
        candidates = await self._rerank(query.text, candidates, query.k, QueryType.TEXT, True)

        return await self._assemble(query.text, candidates, start_time)

    async def ask_image(
        self,
        image: bytes,
        mime_type: str = "image/jpeg",
        question: Optional[str] = None,
        k: Optional[int] = None,
    ) -> RagAnswer:
        """
        图片查询

        流程: 图片向量化 -> 图片向量召回 -> 重排（可选）-> 生成
        图片向量化失败时直接返回固定回答和空上下文，不做检索
        """
        query = self._build_query(text=question, image=image, image_mime=mime_type, k=k)
        start_time = time.time()
        logger.info(
            f"[RagGateway] 图片查询: size={len(image or b'')}, mime={query.image_mime}, "
            f"has_text={query.has_text}, k={query.k}"
        )

        if not query.image:
            logger.warning("[RagGateway] 图片为空，无法检索")
            return RagAnswer.build(IMAGE_EMBED_FAILED_ANSWER, [])

        query_vector = await self.image_embedder.embed_image(query.image, query.image_mime)
        if not query_vector:
            logger.warning("[RagGateway] 图片向量化失败，返回固定回答")
            return RagAnswer.build(IMAGE_EMBED_FAILED_ANSWER, [])

        candidates = await self.vector_retriever.retrieve(query_vector, Modality.IMAGE, query.k)
        candidates = await self._rerank(
            query.text or "", candidates, query.k, QueryType.IMAGE, query.has_text
        )

        return await self._assemble(query.text or DEFAULT_IMAGE_QUESTION, candidates, start_time)

    async def ask_hybrid(self, question: str, k: Optional[int] = None) -> RagAnswer:
        """
        混合查询

        流程:
        1. 并发执行查询向量化和关键词召回
        2. 文本向量召回
        3. 关键词召回有结果时 RRF 融合并截断到 k，否则只用向量结果
        4. 重排（可选）
        5. 生成
        """
        query = self._build_query(text=question, k=k)
        start_time = time.time()
        logger.info(f"[RagGateway] 混合查询: query='{query.text}', k={query.k}")

        query_vector, lexical_candidates = await asyncio.gather(
            self.text_embedder.embed_text(query.text),
            self.lexical_retriever.retrieve_by_text(query.text, query.k),
        )
        vector_candidates = await self.vector_retriever.retrieve(
            query_vector, Modality.TEXT, query.k
        )

        candidates = self.fuse(vector_candidates, lexical_candidates, query.k)
        candidates = await self._rerank(query.text, candidates, query.k, QueryType.HYBRID, True)

        return await self._assemble(query.text, candidates, start_time)

    def fuse(
        self, vector_candidates: List[Candidate], lexical_candidates: List[Candidate], k: int
    ) -> List[Candidate]:
        """关键词结果为空时退化为纯向量结果"""
        if not lexical_candidates:
            logger.info("[RagGateway] 关键词召回无结果，使用向量结果")
            return list(vector_candidates)
        merged = self.fusion_service.fuse(vector_candidates, lexical_candidates, self.rrf_k)
        return merged[:k]

    async def _rerank(
        self,
        query: str,
        candidates: List[Candidate],
        k: int,
        query_type: QueryType,
        has_explicit_text_query: bool,
    ) -> List[Candidate]:
        if self.rerank_service is None:
            return candidates
        return await self.rerank_service.rerank(
            query, candidates, k, query_type, has_explicit_text_query
        )

    async def _assemble(
        self, question: str, candidates: List[Candidate], start_time: float
    ) -> RagAnswer:
        try:
            answer = await self.generator.generate(question, candidates)
        except Exception as e:
            logger.error(f"[RagGateway] 生成回答失败: {e}")
            raise

        took_ms = (time.time() - start_time) * 1000
        logger.info(
            f"[RagGateway] 查询完成: context={len(candidates)}, took={took_ms:.2f}ms"
        )
        return RagAnswer.build(answer, candidates)
