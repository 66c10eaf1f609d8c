"""
ElasticSearch 搜索引擎客户端

对 title / description 做全文检索
"""

from typing import Any, Dict, List, Optional, Sequence

from elasticsearch import AsyncElasticsearch
from loguru import logger

from film_rag.core.config import settings
from film_rag.rag.strategies.base import TextSearchEngine

DEFAULT_TEXT_FIELDS = ("title", "description")


class SearchEngineClient(TextSearchEngine):
    """
    ElasticSearch 客户端

    负责 BM25 关键词检索，自动适配本地/远程ES部署
    """

    def __init__(self, client: Optional[AsyncElasticsearch] = None, index_name: Optional[str] = None):
        self.index_name = settings.ES_INDEX_NAME if index_name is None else index_name
        self.client = client
        if self.client is None:
            self._create_client()

    def _create_client(self):
        """
        创建 ES 客户端连接

        根据配置自动适配本地/远程部署，支持 HTTPS 和基础认证
        """
        try:
            es_config = {
                "hosts": [f"{settings.ES_SCHEME}://{settings.ES_HOST}:{settings.ES_PORT}"]
            }

            if settings.ES_USERNAME and settings.ES_PASSWORD:
                es_config["basic_auth"] = (settings.ES_USERNAME, settings.ES_PASSWORD)
                logger.info(f"连接 ES 使用认证: user={settings.ES_USERNAME}")

            if settings.ES_SCHEME == "https":
                es_config["verify_certs"] = True
                logger.info("连接 ES 启用 HTTPS")

            self.client = AsyncElasticsearch(**es_config)
            logger.info(
                f"成功创建 ES 客户端: {settings.ES_SCHEME}://{settings.ES_HOST}:{settings.ES_PORT}"
            )

        except Exception as e:
            logger.error(f"创建 ES 客户端失败: {e}")
            raise

    @property
    def configured(self) -> bool:
        return bool(self.index_name and self.index_name.strip())

    async def search_text(
        self,
        query: str,
        top_k: int = 10,
        fields: Sequence[str] = DEFAULT_TEXT_FIELDS,
        index_name: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        全文检索

        Args:
            query: 查询文本
            top_k: 返回结果数量
            fields: 检索字段
            index_name: 索引名称（默认使用配置中的索引）

        Returns:
            检索结果列表，格式: [{"id": "...", "score": 15.3, "source": {...}}, ...]
        """
        index_name = index_name or self.index_name
        logger.debug(f"执行全文检索: index={index_name}, query='{query}', top_k={top_k}")

        response = await self.client.search(
            index=index_name,
            query={"multi_match": {"query": query, "fields": list(fields)}},
            size=top_k,
            source=["title", "description", "coverImage"],
        )

        items = []
        for hit in response["hits"]["hits"]:
            items.append(
                {
                    "id": hit["_id"],
                    "score": float(hit["_score"] or 0.0),
                    "source": hit.get("_source") or {},
                }
            )

        logger.info(f"全文检索完成，返回 {len(items)} 条结果")
        return items

    async def close(self):
        """关闭连接"""
        try:
            if self.client:
                await self.client.close()
                logger.info("ES 连接已关闭")
        except Exception as e:
            logger.warning(f"关闭 ES 连接时出错: {e}")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
