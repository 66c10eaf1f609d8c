"""
RAG 网关装配

进程启动时创建一次共享客户端，之后所有请求复用
"""

from typing import Optional

import httpx
from loguru import logger

from film_rag.core.config import Settings, settings as default_settings
from film_rag.rag.clients.es_client import SearchEngineClient
from film_rag.rag.clients.milvus_client import VectorDBClient
from film_rag.rag.fusion.rrf_fusion import RRFMergeImpl
from film_rag.rag.gateways.embedding import EmbeddingService, create_openai_client
from film_rag.rag.gateways.generation import ChatGenerator
from film_rag.rag.gateways.image_store import ImageStore
from film_rag.rag.models.candidate import Modality
from film_rag.rag.models.vector_index import VectorIndexSpec
from film_rag.rag.rerank.factory import create_rerank_service
from film_rag.rag.search_gateway import RagGateway
from film_rag.rag.strategies.keyword_strategy import LexicalRetriever
from film_rag.rag.strategies.vector_strategy import VectorRetriever


def vector_indexes_from_settings(settings: Settings) -> dict:
    return {
        Modality.TEXT: VectorIndexSpec(
            index_name=settings.VECTOR_TEXT_INDEX,
            field=settings.VECTOR_TEXT_FIELD,
            metric_type=settings.VECTOR_METRIC,
        ),
        Modality.IMAGE: VectorIndexSpec(
            index_name=settings.VECTOR_IMAGE_INDEX,
            field=settings.VECTOR_IMAGE_FIELD,
            metric_type=settings.VECTOR_METRIC,
        ),
    }


def build_rag_gateway(
    settings: Settings = default_settings,
    http_client: Optional[httpx.AsyncClient] = None,
) -> RagGateway:
    """
    根据配置创建 RAG 网关

    缺少必要凭证时直接抛出 ConfigurationError
    """
    settings.validate_required()
    http_client = http_client or httpx.AsyncClient(
        timeout=settings.HTTP_TIMEOUT_SECONDS, follow_redirects=True
    )
    cooldown = settings.RATE_LIMIT_COOLDOWN_SECONDS

    embedding_client = create_openai_client(settings.OPENAI_API_KEY, settings.OPENAI_API_BASE)
    embedding_service = EmbeddingService(
        client=embedding_client,
        http_client=http_client,
        text_model=settings.OPENAI_EMBEDDING_MODEL,
        multimodal_url=settings.VOYAGE_MULTIMODAL_URL,
        multimodal_model=settings.VOYAGE_MULTIMODAL_MODEL,
        multimodal_api_key=settings.VOYAGE_API_KEY,
        cooldown=cooldown,
    )

    vector_retriever = VectorRetriever(
        engine=VectorDBClient(collection_name=settings.MILVUS_COLLECTION),
        indexes=vector_indexes_from_settings(settings),
        candidate_multiplier=settings.VECTOR_CANDIDATE_MULTIPLIER,
        max_candidates=settings.VECTOR_MAX_CANDIDATES,
    )

    text_engine = SearchEngineClient(index_name=settings.ES_INDEX_NAME) if settings.lexical_enabled else None
    lexical_retriever = LexicalRetriever(engine=text_engine)

    rerank_service = create_rerank_service(
        settings,
        http_client=http_client,
        image_fetcher=ImageStore.from_settings(settings, http_client=http_client),
    )

    gateway = RagGateway(
        text_embedder=embedding_service,
        image_embedder=embedding_service,
        vector_retriever=vector_retriever,
        lexical_retriever=lexical_retriever,
        fusion_service=RRFMergeImpl(k_const=settings.RRF_K),
        generator=ChatGenerator(
            client=create_openai_client(settings.LLM_API_KEY, settings.LLM_API_BASE),
            model=settings.LLM_MODEL,
            call_enabled=settings.LLM_CALL_ENABLED,
            cooldown=cooldown,
        ),
        rerank_service=rerank_service,
        rrf_k=settings.RRF_K,
        default_k=settings.RAG_DEFAULT_K,
        max_k=settings.RAG_MAX_K,
    )
    logger.info("[RagFactory] RAG 网关装配完成")
    return gateway
