"""Tests for vector similarity helpers."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from trustwire.process import embeddings
from trustwire.process.embeddings import cosine_similarity, embed_texts, zero_vector


def test_cosine_identical_vectors():
    assert cosine_similarity([0.3, -1.2, 4.0], [0.3, -1.2, 4.0]) == pytest.approx(1.0)


def test_cosine_orthogonal_and_opposite():
    assert cosine_similarity([1, 0], [0, 1]) == pytest.approx(0.0)
    assert cosine_similarity([1, 2], [-1, -2]) == pytest.approx(-1.0)


def test_cosine_degenerate_inputs():
    assert cosine_similarity([1, 2, 3], [1, 2]) == 0.0
    assert cosine_similarity([0, 0, 0], [1, 2, 3]) == 0.0
    assert cosine_similarity([], []) == 0.0
    assert cosine_similarity(None, [1.0]) == 0.0


def test_zero_vector():
    assert zero_vector(4) == [0.0, 0.0, 0.0, 0.0]


def test_embed_texts_caches_model():
    fake_model = MagicMock()
    fake_model.encode.return_value = np.ones((2, 8), dtype=np.float32)

    with patch.dict(embeddings._models, clear=True), \
            patch("model2vec.StaticModel.from_pretrained", return_value=fake_model) as load:
        first = embed_texts(["a", "b"], "test/model")
        embed_texts(["c"], "test/model")

    assert first.shape == (2, 8)
    load.assert_called_once_with("test/model")
    assert fake_model.encode.call_count == 2
