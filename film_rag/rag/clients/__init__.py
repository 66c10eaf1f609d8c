"""
基础设施客户端模块

封装 Milvus、ElasticSearch 等外部服务的客户端
"""

from film_rag.rag.clients.milvus_client import VectorDBClient
from film_rag.rag.clients.es_client import SearchEngineClient

__all__ = ["VectorDBClient", "SearchEngineClient"]
