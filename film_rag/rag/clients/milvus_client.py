"""
Milvus 向量数据库客户端

一个集合里每种模态一个向量字段，每个字段一个命名索引
"""

import asyncio
from typing import Any, Dict, List, Optional

from pymilvus import Collection, connections
from loguru import logger

from film_rag.core.config import settings
from film_rag.core.errors import IndexNotFoundError
from film_rag.rag.models.vector_index import VectorIndexSpec
from film_rag.rag.strategies.base import VectorSearchEngine

OUTPUT_FIELDS = ["title", "description", "coverImage"]


class VectorDBClient(VectorSearchEngine):
    """
    Milvus 向量数据库客户端

    负责向量检索操作，自动适配本地/远程Milvus部署
    """

    def __init__(
        self,
        collection_name: Optional[str] = None,
        connect_alias: str = "default",
        collection: Optional[Collection] = None,
    ):
        """
        初始化 Milvus 客户端

        Args:
            collection_name: 集合名称
            connect_alias: 连接别名
            collection: 已加载的集合（测试或复用连接时传入）
        """
        self.collection_name = collection_name or settings.MILVUS_COLLECTION
        self.connect_alias = connect_alias
        self.collection = collection
        if self.collection is None:
            self._connect()

    def _connect(self):
        """
        连接到 Milvus

        根据配置自动适配本地/远程部署，支持认证和TLS
        """
        try:
            connect_params = {
                "alias": self.connect_alias,
                "host": settings.MILVUS_HOST,
                "port": str(settings.MILVUS_PORT),
            }

            if settings.MILVUS_USER and settings.MILVUS_PASSWORD:
                connect_params["user"] = settings.MILVUS_USER
                connect_params["password"] = settings.MILVUS_PASSWORD
                logger.info(f"连接 Milvus 使用认证: user={settings.MILVUS_USER}")

            if settings.MILVUS_SECURE:
                connect_params["secure"] = True
                logger.info("连接 Milvus 启用 TLS 加密")

            connections.connect(**connect_params)
            logger.info(f"成功连接到 Milvus: {settings.MILVUS_HOST}:{settings.MILVUS_PORT}")

            self.collection = Collection(self.collection_name, using=self.connect_alias)
            self.collection.load()
            logger.info(f"成功加载 Milvus 集合: {self.collection_name}")

        except Exception as e:
            logger.error(f"连接 Milvus 失败: {e}")
            raise

    async def search_vector(
        self,
        index: VectorIndexSpec,
        query_vector: List[float],
        num_candidates: int,
        limit: int,
    ) -> List[Dict[str, Any]]:
        """
        向量检索

        Args:
            index: 目标模态的命名索引
            query_vector: 查询向量（维度需与索引一致）
            num_candidates: 引擎内部候选池大小（HNSW ef）
            limit: 返回结果数量

        Returns:
            检索结果列表，格式: [{"id": "...", "score": 0.95, "entity": {...}}, ...]

        Raises:
            IndexNotFoundError: 命名索引不存在（配置错误，不降级）
        """
        return await asyncio.to_thread(
            self._search_sync, index, query_vector, num_candidates, limit
        )

    def _search_sync(
        self,
        index: VectorIndexSpec,
        query_vector: List[float],
        num_candidates: int,
        limit: int,
    ) -> List[Dict[str, Any]]:
        if not self.collection.has_index(index_name=index.index_name):
            logger.error(f"向量索引不存在: {index.index_name}")
            raise IndexNotFoundError(index.index_name)

        logger.debug(
            f"执行向量检索: index={index.index_name}, vector_dim={len(query_vector)}, "
            f"num_candidates={num_candidates}, limit={limit}"
        )
        search_params = {
            "metric_type": index.metric_type,
            "params": {"ef": max(num_candidates, limit)},
        }
        results = self.collection.search(
            data=[query_vector],
            anns_field=index.field,
            param=search_params,
            limit=limit,
            output_fields=OUTPUT_FIELDS,
        )

        items = []
        for hit in results[0]:
            entity = {field: hit.entity.get(field) for field in OUTPUT_FIELDS}
            items.append(
                {
                    "id": str(hit.id),
                    "score": float(hit.distance),
                    "entity": entity,
                }
            )

        logger.info(f"向量检索完成: index={index.index_name}, 返回 {len(items)} 条结果")
        return items

    def close(self):
        """关闭连接"""
        try:
            connections.disconnect(self.connect_alias)
            logger.info("Milvus 连接已关闭")
        except Exception as e:
            logger.warning(f"关闭 Milvus 连接时出错: {e}")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
