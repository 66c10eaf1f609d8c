"""
film_rag - 影片目录多模态 RAG 检索层

向量召回 + 关键词召回 + RRF 融合 + 文本/多模态重排
"""

__version__ = "1.0.0"
