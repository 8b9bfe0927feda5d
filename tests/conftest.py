"""
Shared fixtures for the ltrnet test suite.
"""

import os

os.environ.setdefault("MPLBACKEND", "Agg")

import numpy as np
import pytest

from ltrnet.model import Document, Query


def make_queries(rng, n_queries=2, n_docs=3, n_features=4):
    """Queries with random features; labels follow the feature sum (highest sum = best)"""
    queries = []
    for q in range(n_queries):
        feats = rng.uniform(0.0, 1.0, size=(n_docs, n_features))
        labels = np.empty(n_docs)
        labels[np.argsort(-feats.sum(axis=1))] = np.arange(n_docs - 1, -1, -1)
        docs = [Document(features=feats[i], label=labels[i], position=i) for i in range(n_docs)]
        queries.append(Query(query_id=str(q), docs=docs))
    return queries


def make_random_queries(rng, n_queries=2, n_docs=3, n_features=4):
    """Queries with uniform random features; each query's labels are a permutation of 0..n_docs-1"""
    queries = []
    for q in range(n_queries):
        feats = rng.uniform(0.0, 1.0, size=(n_docs, n_features))
        labels = rng.permutation(n_docs)
        docs = [Document(features=feats[i], label=labels[i], position=i) for i in range(n_docs)]
        queries.append(Query(query_id=str(q), docs=docs))
    return queries


class ScoreRanker:
    """Scores a document by its first feature"""

    def predict(self, features):
        return float(features[0])


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def queries(rng):
    return make_queries(rng)


@pytest.fixture
def score_ranker():
    return ScoreRanker()
