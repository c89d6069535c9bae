"""Embedding generation using Model2Vec (lightweight, CPU-only)."""

from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np

logger = logging.getLogger(__name__)

_models: dict[str, object] = {}


def get_model(model_name: str = "minishlab/potion-base-8M"):
    """Lazy-load and cache the embedding model."""
    if model_name not in _models:
        from model2vec import StaticModel

        logger.info("Loading embedding model: %s", model_name)
        _models[model_name] = StaticModel.from_pretrained(model_name)
    return _models[model_name]


def embed_texts(texts: list[str], model_name: str = "minishlab/potion-base-8M") -> np.ndarray:
    """Generate embeddings for a list of texts. Returns (N, D) array."""
    model = get_model(model_name)
    return model.encode(texts)


def zero_vector(dimension: int) -> list[float]:
    return [0.0] * dimension


def cosine_similarity(a: Sequence[float] | None, b: Sequence[float] | None) -> float:
    """dot(a, b) / (|a||b|); 0.0 for missing, zero-length, zero or mismatched vectors."""
    if a is None or b is None:
        return 0.0
    vec_a = np.asarray(a, dtype=np.float64)
    vec_b = np.asarray(b, dtype=np.float64)
    if vec_a.size == 0 or vec_a.shape != vec_b.shape:
        return 0.0
    norm_a = np.linalg.norm(vec_a)
    norm_b = np.linalg.norm(vec_b)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return float(np.dot(vec_a, vec_b) / (norm_a * norm_b))
