"""
融合服务接口定义
"""

from abc import ABC, abstractmethod
from typing import List

from film_rag.rag.models.candidate import Candidate


class IFusionService(ABC):
    """
    融合服务接口

    负责将多路召回结果融合为单一的排序列表
    """

    @abstractmethod
    def fuse(
        self,
        list_a: List[Candidate],
        list_b: List[Candidate],
        k_const: int = 60,
    ) -> List[Candidate]:
        """
        融合两路召回结果

        Args:
            list_a: 第一路召回（通常是向量召回）
            list_b: 第二路召回（通常是关键词召回）
            k_const: RRF 参数

        Returns:
            按融合分数降序排列的新列表
        """
