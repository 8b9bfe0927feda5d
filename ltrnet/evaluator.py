"""
ltrnet/evaluator.py - Ranking documents with a Ranker and scoring the result
"""

from typing import List, Optional, Sequence

import numpy as np

from .model import Document, Query
from .utils import compute_ndcg


def sort_p(ranker, query: Query) -> List[Document]:
    """
    Documents of `query` sorted from highest to lowest predicted score.

    A new list is returned; the query's own list is left as is. Documents with
    equal scores keep their original relative order.
    """
    scores = [ranker.predict(doc.features) for doc in query.docs]
    order = sorted(range(len(query.docs)), key=lambda i: scores[i], reverse=True)
    return [query.docs[i] for i in order]


class Evaluator:
    """NDCG@k and loss of a Ranker over query sets"""

    def __init__(self, ranker, k: int = 10, algorithm=None):
        self.ranker = ranker
        self.k = k
        self.algorithm = algorithm

    def sort_p(self, query: Query) -> List[Document]:
        return sort_p(self.ranker, query)

    def ndcg(self, query: Query, k: Optional[int] = None) -> float:
        k = self.k if k is None else k
        ranked = self.sort_p(query)
        return compute_ndcg([doc.label for doc in ranked], k)

    def ndcg_avg(self, queries: Sequence[Query], k: Optional[int] = None) -> float:
        """Mean NDCG@k; queries with zero ideal DCG count as 0"""
        if not queries:
            return 0.0
        return float(np.mean([self.ndcg(query, k) for query in queries]))

    def loss(self, queries: Sequence[Query]) -> float:
        if self.algorithm is None:
            raise ValueError("Evaluator has no algorithm to compute a loss with")
        return self.algorithm.calculate_loss(self.ranker, queries)
