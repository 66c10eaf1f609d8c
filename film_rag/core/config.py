# 读取 .env 配置
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict

from film_rag.core.errors import ConfigurationError


class Settings(BaseSettings):
    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    # Milvus（一个集合，每种模态一个向量字段 + 命名索引）
    MILVUS_HOST: str = "localhost"
    MILVUS_PORT: str = "19530"
    MILVUS_USER: str = ""
    MILVUS_PASSWORD: str = ""
    MILVUS_SECURE: bool = False
    MILVUS_COLLECTION: str = "films"

    VECTOR_TEXT_INDEX: str = "rag_vector_text_index"
    VECTOR_TEXT_FIELD: str = "text_embedding"
    VECTOR_IMAGE_INDEX: str = "rag_vector_image_index"
    VECTOR_IMAGE_FIELD: str = "image_embedding"
    VECTOR_METRIC: str = "COSINE"

    # Elasticsearch（ES_INDEX_NAME 为空表示未配置关键词索引）
    ES_SCHEME: str = "http"
    ES_HOST: str = "localhost"
    ES_PORT: int = 9200
    ES_USERNAME: str = ""
    ES_PASSWORD: str = ""
    ES_INDEX_NAME: str = ""

    # Embedding
    OPENAI_API_KEY: str = ""
    OPENAI_API_BASE: str = ""
    OPENAI_EMBEDDING_MODEL: str = "voyage-3.5"
    VOYAGE_API_KEY: str = ""
    VOYAGE_MULTIMODAL_URL: str = "https://api.voyageai.com/v1/multimodalembeddings"
    VOYAGE_MULTIMODAL_MODEL: str = "voyage-multimodal-3"

    # Rerank
    RERANK_TEXT_PROVIDER: str = "voyage"  # 可选: "voyage", "tei", "mock", "none"
    VOYAGE_RERANK_URL: str = "https://api.voyageai.com/v1/rerank"
    VOYAGE_RERANK_MODEL: str = "rerank-2.5-lite"
    TEI_ENDPOINT: str = "http://localhost:8081"
    JINA_API_KEY: str = ""
    JINA_RERANK_URL: str = "https://api.jina.ai/v1/rerank"
    JINA_RERANK_MODEL: str = "jina-reranker-m0"
    RERANK_BY_TEXT: bool = True
    RERANK_BY_IMAGE: bool = False

    # LLM（OpenAI 兼容接口，Ollama 也可以）
    LLM_API_BASE: str = "http://127.0.0.1:11434/v1"
    LLM_API_KEY: str = "ollama"
    LLM_MODEL: str = "phi3:mini"
    LLM_CALL_ENABLED: bool = True

    # MinIO（封面图存储）
    MINIO_ENDPOINT: str = "localhost:9000"
    MINIO_ACCESS_KEY: str = ""
    MINIO_SECRET_KEY: str = ""
    MINIO_SECURE: bool = False
    MINIO_BUCKET_NAME: str = "films"

    # 检索调优参数
    RAG_DEFAULT_K: int = 5
    RAG_MAX_K: int = 20
    RRF_K: int = 60
    VECTOR_CANDIDATE_MULTIPLIER: int = 20
    VECTOR_MAX_CANDIDATES: int = 200
    RATE_LIMIT_COOLDOWN_SECONDS: float = 65.0
    HTTP_TIMEOUT_SECONDS: float = 30.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore" # 忽略多余的环境变量
    )

    @property
    def lexical_enabled(self) -> bool:
        return bool(self.ES_INDEX_NAME.strip())

    def missing_credentials(self) -> List[str]:
        """返回已启用的 provider 缺失的配置项"""
        missing = []
        if not self.OPENAI_API_KEY:
            missing.append("OPENAI_API_KEY")
        if not self.VOYAGE_API_KEY:
            missing.append("VOYAGE_API_KEY")
        if self.RERANK_BY_TEXT and self.RERANK_TEXT_PROVIDER == "voyage" and not self.VOYAGE_API_KEY:
            missing.append("VOYAGE_API_KEY (rerank)")
        if self.RERANK_BY_IMAGE and not self.JINA_API_KEY:
            missing.append("JINA_API_KEY")
        return missing

    def validate_required(self) -> None:
        """缺少必填凭证时直接失败，避免带病启动"""
        missing = self.missing_credentials()
        if missing:
            raise ConfigurationError(f"缺少必要配置: {', '.join(missing)}")


settings = Settings()
