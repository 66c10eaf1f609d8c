"""
融合服务模块

实现 RRF (Reciprocal Rank Fusion) 多路召回结果融合
"""

from film_rag.rag.fusion.base import IFusionService
from film_rag.rag.fusion.rrf_fusion import RRFMergeImpl, rrf_fuse

__all__ = ["IFusionService", "RRFMergeImpl", "rrf_fuse"]
