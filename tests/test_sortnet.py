"""
Tests for SortNet pair training and batching.
"""

import random

import numpy as np
import pytest

from ltrnet.algorithms import PointwiseAlgorithm, SortNetAlgorithm, get_algorithm
from ltrnet.config import load_config
from ltrnet.exceptions import ConfigurationError
from ltrnet.model import Document, Query
from ltrnet.ranker import SortNetRanker


class PairStub:
    """Pair ranker with a fixed preference that records every call"""

    def __init__(self, preference=0.0):
        self.preference = preference
        self.pair_calls = 0
        self.targets = []
        self.updates = 0

    def predict_pair(self, features1, features2):
        self.pair_calls += 1
        return self.preference

    def back_prop(self, target, error_func):
        self.targets.append(tuple(target))

    def update_weights(self, learning_rate, regularization_rate):
        self.updates += 1


def doc(label, position=0):
    return Document(features=[float(position)], label=label, position=position)


class TestTrainPair:
    def test_trigger_targets(self):
        algorithm = SortNetAlgorithm()

        ranker = PairStub(preference=0.1)
        assert algorithm.train_pair(ranker, doc(2), doc(0))
        assert ranker.targets == [(1.0, 0.0)]

        ranker = PairStub(preference=0.1)
        assert algorithm.train_pair(ranker, doc(0), doc(2))
        assert ranker.targets == [(0.0, 1.0)]

    def test_confident_pair_not_trained(self):
        ranker = PairStub(preference=10.0)
        assert not SortNetAlgorithm().train_pair(ranker, doc(2), doc(0))
        assert ranker.targets == []

    def test_margin_boundary(self):
        # delta * prediction == threshold is already confident enough
        ranker = PairStub(preference=0.25)
        assert not SortNetAlgorithm().train_pair(ranker, doc(2), doc(0))

    def test_equal_labels_never_evaluated(self):
        ranker = PairStub(preference=-5.0)
        assert not SortNetAlgorithm().train_pair(ranker, doc(1), doc(1))
        assert ranker.pair_calls == 0
        assert ranker.targets == []


def test_partner_is_never_self():
    algorithm = SortNetAlgorithm(rng=random.Random(3))
    docs = [doc(i, i) for i in range(4)]
    seen = set()
    for _ in range(200):
        for i in range(len(docs)):
            partner = algorithm.draw_partner(docs, i)
            assert partner is not docs[i]
            seen.add((i, partner.position))
    assert len(seen) == 12


class TestBatching:
    @staticmethod
    def always_trained_queries():
        # 2 queries x 4 docs, all labels distinct: every pair triggers on a zero preference
        return [Query(query_id=str(q), docs=[doc(i, i) for i in range(4)]) for q in range(2)]

    def test_update_every_batch_plus_remainder(self):
        ranker = PairStub()
        trained = SortNetAlgorithm(rng=random.Random(0)).train_epoch(
            ranker, self.always_trained_queries(), 3, 0.1, 0.0)
        assert trained == 8
        assert len(ranker.targets) == 8
        assert ranker.updates == 3

    def test_batch_size_zero_updates_once(self):
        ranker = PairStub()
        SortNetAlgorithm(rng=random.Random(0)).train_epoch(
            ranker, self.always_trained_queries(), 0, 0.1, 0.0)
        assert ranker.updates == 1

    def test_single_document_queries_are_skipped(self):
        ranker = PairStub()
        queries = [Query(query_id="a", docs=[doc(1)]), Query(query_id="b")]
        trained = SortNetAlgorithm().train_epoch(ranker, queries, 1, 0.1, 0.0)
        assert trained == 0
        assert ranker.pair_calls == 0
        assert ranker.targets == []


class TestLoss:
    def test_loss_over_labelled_pairs(self, rng):
        ranker = SortNetRanker(2, layers=[(3, 'sigmoid')], rng=rng)
        query = Query(query_id="q", docs=[
            Document(features=[0.1, 0.2], label=2),
            Document(features=[0.3, 0.4], label=0),
            Document(features=[0.5, 0.6], label=0),
        ])
        algorithm = SortNetAlgorithm()

        expected = 0.0
        for other in query.docs[1:]:
            out = ranker.forward_pair(query.docs[0].features, other.features)
            expected += 0.5 * ((out[0] - 1.0) ** 2 + out[1] ** 2)
        assert algorithm.calculate_loss(ranker, [query]) == pytest.approx(expected / 2)

    def test_no_pairs(self, rng):
        ranker = SortNetRanker(1, layers=[(2, 'sigmoid')], rng=rng)
        query = Query(query_id="q", docs=[doc(1, 0), doc(1, 1)])
        assert SortNetAlgorithm().calculate_loss(ranker, [query]) == 0.0


def test_training_does_not_change_predictions_until_update(rng, queries):
    ranker = SortNetRanker(4, layers=[(4, 'sigmoid')], rng=rng)
    algorithm = SortNetAlgorithm(rng=random.Random(1))
    before = [ranker.predict(d.features) for d in queries[0].docs]
    for i, d in enumerate(queries[0].docs):
        algorithm.train_pair(ranker, d, algorithm.draw_partner(queries[0].docs, i))
    after = [ranker.predict(d.features) for d in queries[0].docs]
    assert np.allclose(before, after)


def test_build_ranker_from_config(rng):
    config = load_config({"params": {"layers": [{"num": 3, "activator": "tanh"}]}})
    ranker = SortNetAlgorithm().build_ranker(5, config, rng=rng)
    assert isinstance(ranker, SortNetRanker)
    assert ranker.network.layer_sizes == [10, 3, 2]


def test_algorithm_lookup():
    assert isinstance(get_algorithm(" SortNet "), SortNetAlgorithm)
    assert isinstance(get_algorithm("mlp"), PointwiseAlgorithm)
    with pytest.raises(ConfigurationError):
        get_algorithm("lambdamart")
