from __future__ import annotations

import unittest

from film_rag.rag.models.candidate import QueryType
from film_rag.rag.rerank.policy import RerankStrategy, select_rerank_strategy


class SelectRerankStrategyTestCase(unittest.TestCase):
    def test_text_and_hybrid_follow_text_flag(self) -> None:
        for query_type in (QueryType.TEXT, QueryType.HYBRID):
            self.assertEqual(
                select_rerank_strategy(query_type, True, False, True), RerankStrategy.TEXT
            )
            self.assertEqual(
                select_rerank_strategy(query_type, False, True, True), RerankStrategy.NONE
            )

    def test_image_with_multimodal_enabled(self) -> None:
        for has_text in (True, False):
            self.assertEqual(
                select_rerank_strategy(QueryType.IMAGE, False, True, has_text),
                RerankStrategy.MULTIMODAL,
            )

    def test_image_falls_back_to_text_with_explicit_question(self) -> None:
        self.assertEqual(
            select_rerank_strategy(QueryType.IMAGE, True, False, True), RerankStrategy.TEXT
        )

    def test_image_without_question_passes_through(self) -> None:
        self.assertEqual(
            select_rerank_strategy(QueryType.IMAGE, True, False, False), RerankStrategy.NONE
        )

    def test_accepts_raw_string_query_type(self) -> None:
        self.assertEqual(select_rerank_strategy("hybrid", True, False, False), RerankStrategy.TEXT)


if __name__ == "__main__":
    unittest.main()
