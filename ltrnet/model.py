"""
ltrnet/model.py - Data models for learning-to-rank datasets
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Tuple, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class Document:
    """Judged document of a query; compared by identity"""
    features: Tuple[float, ...]
    label: float
    position: int = 0

    def __post_init__(self):
        object.__setattr__(self, 'features', tuple(float(f) for f in self.features))
        object.__setattr__(self, 'label', float(self.label))

    @property
    def feature_length(self) -> int:
        return len(self.features)


@dataclass
class Query:
    """Query id and its ordered document list"""
    query_id: str
    docs: List[Document] = field(default_factory=list)

    @property
    def feature_length(self) -> int:
        return self.docs[0].feature_length if self.docs else 0

    def __len__(self):
        return len(self.docs)


def parse_letor(lines: Iterable[str]) -> List[Query]:
    """
    Parse LETOR / SVMlight ranking lines:

        <label> qid:<id> <index>:<value> ... [# comment]

    Feature indices start at 1. Indices missing on a line are 0, and every
    document gets as many features as the highest index seen, so feature
    length is uniform across the returned queries.
    """
    rows = []
    max_index = 0
    for line_no, line in enumerate(lines, start=1):
        line = line.split('#', 1)[0].strip()
        if not line:
            continue
        tokens = line.split()
        try:
            label = float(tokens[0])
            if not tokens[1].startswith('qid:'):
                raise ValueError(f"expected qid:<id>, got {tokens[1]!r}")
            qid = tokens[1][4:]
            values = {}
            for token in tokens[2:]:
                index, value = token.split(':', 1)
                values[int(index)] = float(value)
        except (IndexError, ValueError) as e:
            raise ValueError(f"Malformed ranking data on line {line_no}: {e}") from e
        if values:
            max_index = max(max_index, max(values))
        rows.append((qid, label, values))

    queries = OrderedDict()
    for qid, label, values in rows:
        query = queries.setdefault(qid, Query(query_id=qid))
        features = [values.get(i, 0.0) for i in range(1, max_index + 1)]
        query.docs.append(Document(features=features, label=label, position=len(query.docs)))

    return list(queries.values())


def read_letor(path: Union[str, Path]) -> List[Query]:
    """Load a LETOR-format file into queries"""
    with open(path, 'r') as f:
        queries = parse_letor(f)
    logger.info(f"Loaded {len(queries)} queries from {path}")
    return queries
