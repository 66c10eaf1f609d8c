from __future__ import annotations

import asyncio
import unittest

from film_rag.core.errors import ConfigurationError, IndexNotFoundError
from film_rag.rag.models.candidate import Modality
from film_rag.rag.models.vector_index import VectorIndexSpec
from film_rag.rag.strategies.keyword_strategy import LexicalRetriever
from film_rag.rag.strategies.vector_strategy import VectorRetriever
from tests.fakes import FakeTextEngine, FakeVectorEngine

TEXT_INDEX = VectorIndexSpec("text_idx", "text_embedding")
IMAGE_INDEX = VectorIndexSpec("image_idx", "image_embedding")


def _hit(doc_id, score, title=""):
    return {
        "id": doc_id,
        "score": score,
        "entity": {"title": title, "description": f"about {title}", "coverImage": f"{doc_id}.jpg"},
    }


class VectorRetrieverTestCase(unittest.TestCase):
    def _retriever(self, engine, **kwargs):
        return VectorRetriever(
            engine,
            {Modality.TEXT: TEXT_INDEX, Modality.IMAGE: IMAGE_INDEX},
            candidate_multiplier=20,
            max_candidates=200,
            **kwargs,
        )

    def test_candidate_pool_size(self) -> None:
        retriever = self._retriever(FakeVectorEngine())
        self.assertEqual(retriever.candidate_pool_size(1), 20)
        self.assertEqual(retriever.candidate_pool_size(5), 100)
        self.assertEqual(retriever.candidate_pool_size(10), 200)
        self.assertEqual(retriever.candidate_pool_size(20), 200)

    def test_explicit_values_not_replaced_by_defaults(self) -> None:
        retriever = VectorRetriever(
            FakeVectorEngine(), {Modality.TEXT: TEXT_INDEX}, candidate_multiplier=3, max_candidates=0
        )
        self.assertEqual(retriever.max_candidates, 0)
        self.assertEqual(retriever.candidate_pool_size(5), 0)

    def test_uses_index_for_modality(self) -> None:
        engine = FakeVectorEngine(
            {
                "text_idx": [_hit(1, 0.9, "Alien")],
                "image_idx": [_hit(7, 0.8, "Up"), _hit(8, 0.7, "Heat")],
            }
        )
        retriever = self._retriever(engine)

        result = asyncio.run(retriever.retrieve([0.1, 0.2], Modality.IMAGE, 5))

        self.assertEqual(engine.calls[0]["index"], "image_idx")
        self.assertEqual(engine.calls[0]["field"], "image_embedding")
        self.assertEqual(engine.calls[0]["num_candidates"], 100)
        self.assertEqual(engine.calls[0]["limit"], 5)
        self.assertEqual([c.id for c in result], ["7", "8"])
        self.assertEqual(result[0].title, "Up")
        self.assertEqual(result[0].cover_image, "7.jpg")
        self.assertEqual(result[0].score, 0.8)

    def test_truncates_to_k(self) -> None:
        engine = FakeVectorEngine({"text_idx": [_hit(i, 1.0 - i / 10) for i in range(6)]})
        result = asyncio.run(self._retriever(engine).retrieve([0.0], Modality.TEXT, 3))
        self.assertEqual([c.id for c in result], ["0", "1", "2"])

    def test_missing_index_is_configuration_error(self) -> None:
        retriever = self._retriever(FakeVectorEngine({}))
        with self.assertRaises(IndexNotFoundError) as ctx:
            asyncio.run(retriever.retrieve([0.1], Modality.TEXT, 5))
        self.assertIsInstance(ctx.exception, ConfigurationError)
        self.assertEqual(ctx.exception.index_name, "text_idx")

    def test_unconfigured_modality(self) -> None:
        retriever = VectorRetriever(FakeVectorEngine(), {Modality.TEXT: TEXT_INDEX})
        with self.assertRaises(ConfigurationError):
            asyncio.run(retriever.retrieve([0.1], Modality.IMAGE, 5))

    def test_l2_distance_converted_to_similarity(self) -> None:
        l2_index = VectorIndexSpec("l2_idx", "text_embedding", metric_type="L2")
        engine = FakeVectorEngine({"l2_idx": [_hit(1, 0.0), _hit(2, 1.0)]})
        retriever = VectorRetriever(engine, {Modality.TEXT: l2_index})

        result = asyncio.run(retriever.retrieve([0.1], Modality.TEXT, 2))

        self.assertEqual([c.score for c in result], [1.0, 0.5])


class LexicalRetrieverTestCase(unittest.TestCase):
    def test_returns_candidates(self) -> None:
        engine = FakeTextEngine(
            results=[
                {"id": "a", "score": 7.5, "source": {"title": "Gladiator", "coverImage": "g.jpg"}},
                {"id": "b", "score": 3.1, "source": {"title": "Troy"}},
            ]
        )
        result = asyncio.run(LexicalRetriever(engine).retrieve_by_text("roman", 5))

        self.assertEqual(engine.calls, [("roman", 5)])
        self.assertEqual([(c.id, c.score) for c in result], [("a", 7.5), ("b", 3.1)])
        self.assertEqual(result[0].cover_image, "g.jpg")

    def test_engine_failure_returns_empty(self) -> None:
        engine = FakeTextEngine(error=ConnectionError("es down"))
        self.assertEqual(asyncio.run(LexicalRetriever(engine).retrieve_by_text("q", 5)), [])

    def test_unconfigured_returns_empty_without_calls(self) -> None:
        engine = FakeTextEngine(results=[{"id": "a", "score": 1.0, "source": {}}], configured=False)
        retriever = LexicalRetriever(engine)

        self.assertFalse(retriever.enabled)
        self.assertEqual(asyncio.run(retriever.retrieve_by_text("q", 5)), [])
        self.assertEqual(engine.calls, [])

    def test_no_engine(self) -> None:
        self.assertEqual(asyncio.run(LexicalRetriever().retrieve_by_text("q", 5)), [])

    def test_blank_query(self) -> None:
        engine = FakeTextEngine(results=[{"id": "a", "score": 1.0, "source": {}}])
        self.assertEqual(asyncio.run(LexicalRetriever(engine).retrieve_by_text("  ", 5)), [])
        self.assertEqual(engine.calls, [])


if __name__ == "__main__":
    unittest.main()
