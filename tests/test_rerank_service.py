from __future__ import annotations

import asyncio
import unittest

from film_rag.core.errors import RateLimitError
from film_rag.rag.gateways.base import RerankHit
from film_rag.rag.models.candidate import Candidate, QueryType
from film_rag.rag.rerank.service import (
    DEFAULT_IMAGE_RERANK_QUERY,
    RerankService,
    apply_rerank_hits,
    build_text_documents,
)
from tests.fakes import (
    FakeImageFetcher,
    FakeMultimodalReranker,
    FakeTextReranker,
    make_candidates,
)


def _run(awaitable):
    return asyncio.run(awaitable)


class TextRerankTestCase(unittest.TestCase):
    def test_reorders_and_replaces_scores(self) -> None:
        candidates = make_candidates(0, 1, 2)
        reranker = FakeTextReranker(
            hits=[RerankHit(index=2, relevance_score=0.9), RerankHit(index=0, relevance_score=0.5)]
        )
        service = RerankService(text_reranker=reranker)

        result = _run(service.rerank("roman hero", candidates, 2, QueryType.TEXT, True))

        self.assertEqual(len(result), 2)
        self.assertEqual(result[0].id, candidates[2].id)
        self.assertEqual(result[0].score, 0.9)
        self.assertEqual(result[1].id, candidates[0].id)
        self.assertEqual(result[1].score, 0.5)
        self.assertEqual(reranker.calls[0]["top_k"], 2)
        # 输入列表不被修改
        self.assertEqual([c.score for c in candidates], [1.0, 1.0, 1.0])

    def test_empty_hits_returns_original_list(self) -> None:
        candidates = make_candidates(1, 2, 3)
        service = RerankService(text_reranker=FakeTextReranker(hits=[]))

        result = _run(service.rerank("q", candidates, 2, QueryType.TEXT, True))

        self.assertEqual([c.id for c in result], ["1", "2", "3"])
        self.assertEqual([c.score for c in result], [1.0, 1.0, 1.0])

    def test_provider_error_returns_original_list(self) -> None:
        candidates = make_candidates(1, 2)
        service = RerankService(text_reranker=FakeTextReranker(error=RateLimitError("voyage-rerank")))

        result = _run(service.rerank("q", candidates, 2, QueryType.HYBRID, True))

        self.assertEqual([c.id for c in result], ["1", "2"])

    def test_text_documents_title_and_description(self) -> None:
        candidates = [
            Candidate(id="1", title="Gladiator", description="A Roman general"),
            Candidate(id="2", title="", description=""),
            Candidate(id="3", title="  Up ", description=""),
        ]
        self.assertEqual(build_text_documents(candidates), ["Gladiator A Roman general", " ", "Up"])

    def test_top_k_capped_by_candidate_count(self) -> None:
        reranker = FakeTextReranker(hits=[RerankHit(index=0, relevance_score=0.3)])
        service = RerankService(text_reranker=reranker)

        _run(service.rerank("q", make_candidates(1), 10, QueryType.TEXT, True))

        self.assertEqual(reranker.calls[0]["top_k"], 1)

    def test_disabled_passes_through_without_calls(self) -> None:
        reranker = FakeTextReranker(hits=[RerankHit(index=1, relevance_score=0.9)])
        service = RerankService(text_reranker=reranker, rerank_by_text=False)

        result = _run(service.rerank("q", make_candidates(1, 2), 2, QueryType.TEXT, True))

        self.assertEqual([c.id for c in result], ["1", "2"])
        self.assertEqual(reranker.calls, [])

    def test_empty_candidates(self) -> None:
        reranker = FakeTextReranker()
        service = RerankService(text_reranker=reranker)
        self.assertEqual(_run(service.rerank("q", [], 3, QueryType.TEXT, True)), [])
        self.assertEqual(reranker.calls, [])

    def test_invalid_and_duplicate_indexes_ignored(self) -> None:
        hits = [
            RerankHit(index=5, relevance_score=0.99),
            RerankHit(index=1, relevance_score=0.8),
            RerankHit(index=1, relevance_score=0.7),
            RerankHit(index=0, relevance_score=0.6),
        ]
        result = apply_rerank_hits(make_candidates("a", "b"), hits, top_k=2)
        self.assertEqual([(c.id, c.score) for c in result], [("b", 0.8), ("a", 0.6)])


class ImageRerankTestCase(unittest.TestCase):
    def test_image_query_falls_back_to_text_reranker(self) -> None:
        text_reranker = FakeTextReranker(hits=[RerankHit(index=1, relevance_score=0.7)])
        service = RerankService(text_reranker=text_reranker, multimodal_reranker=None)

        result = _run(
            service.rerank("who is the hero?", make_candidates(1, 2), 1, QueryType.IMAGE, True)
        )

        self.assertEqual(len(text_reranker.calls), 1)
        self.assertEqual(text_reranker.calls[0]["query"], "who is the hero?")
        self.assertEqual([c.id for c in result], ["2"])

    def test_image_query_without_text_passes_through(self) -> None:
        text_reranker = FakeTextReranker(hits=[RerankHit(index=1, relevance_score=0.7)])
        service = RerankService(text_reranker=text_reranker)

        result = _run(service.rerank("", make_candidates(1, 2), 2, QueryType.IMAGE, False))

        self.assertEqual(text_reranker.calls, [])
        self.assertEqual([c.id for c in result], ["1", "2"])

    def test_multimodal_partial_fallback_per_candidate(self) -> None:
        candidates = [
            Candidate(id="1", title="A", description="first", cover_image="http://img/1.png"),
            Candidate(id="2", title="B", description="second", cover_image="http://img/missing.jpg"),
            Candidate(id="3", title="C", description="third", cover_image=""),
        ]
        fetcher = FakeImageFetcher(images={"http://img/1.png": (b"\x89PNG", "image/png")})
        multimodal = FakeMultimodalReranker(
            hits=[RerankHit(index=1, relevance_score=0.8), RerankHit(index=0, relevance_score=0.6)]
        )
        text_reranker = FakeTextReranker()
        service = RerankService(
            text_reranker=text_reranker, multimodal_reranker=multimodal, image_fetcher=fetcher
        )

        result = _run(service.rerank("", candidates, 2, QueryType.IMAGE, False))

        documents = multimodal.calls[0]["documents"]
        self.assertEqual(documents[0], {"image": "data:image/png;base64,iVBORw=="})
        self.assertEqual(documents[1], {"text": "B second"})
        self.assertEqual(documents[2], {"text": "C third"})
        self.assertEqual(multimodal.calls[0]["query"], DEFAULT_IMAGE_RERANK_QUERY)
        self.assertEqual(multimodal.calls[0]["top_n"], 2)
        self.assertEqual(text_reranker.calls, [])
        self.assertEqual([(c.id, c.score) for c in result], [("2", 0.8), ("1", 0.6)])

    def test_multimodal_uses_caller_question(self) -> None:
        multimodal = FakeMultimodalReranker(hits=[])
        service = RerankService(multimodal_reranker=multimodal, image_fetcher=FakeImageFetcher())

        result = _run(service.rerank("space film", make_candidates(1), 1, QueryType.IMAGE, True))

        self.assertEqual(multimodal.calls[0]["query"], "space film")
        # 返回空 -> 原样
        self.assertEqual([c.id for c in result], ["1"])

    def test_multimodal_requires_image_fetcher(self) -> None:
        service = RerankService(multimodal_reranker=FakeMultimodalReranker())
        self.assertFalse(service.rerank_by_image)


if __name__ == "__main__":
    unittest.main()
