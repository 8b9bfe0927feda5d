"""
scripts/evaluate.py - Evaluation script for a saved ltrnet model
"""

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import argparse

from ltrnet.evaluator import Evaluator
from ltrnet.exceptions import LTRError
from ltrnet.model import read_letor
from ltrnet.ranker import load_ranker


def main(args):
    """Main evaluation function"""

    print("=" * 70)
    print("ltrnet Evaluation")
    print("=" * 70)

    try:
        print(f"\nLoading model from {args.model}...")
        ranker = load_ranker(args.model)

        print(f"Loading test data from {args.test_data}...")
        queries = read_letor(args.test_data)
    except (LTRError, OSError, ValueError) as e:
        print(f"Error: {e}")
        return 1

    evaluator = Evaluator(ranker, k=args.k)

    print("\nEvaluating model...")
    try:
        scores = {k: evaluator.ndcg_avg(queries, k) for k in sorted(set(args.cutoffs + [args.k]))}
    except LTRError as e:
        print(f"Error: {e}")
        return 1

    print("\nEvaluation Results:")
    for k, score in scores.items():
        print(f"NDCG@{k}: {score:.4f}")
    print(f"Number of queries: {len(queries)}")

    if args.show_ranking:
        for query in queries[:args.show_ranking]:
            ranked = evaluator.sort_p(query)
            labels = ' '.join(f"{doc.label:g}" for doc in ranked)
            print(f"  qid={query.query_id}: {labels}")

    print("\n" + "=" * 70)
    print("Evaluation completed!")
    print("=" * 70)
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Evaluate a saved ltrnet model")

    parser.add_argument(
        '--model',
        type=str,
        default='model/model.json',
        help='Model file written by train.py'
    )
    parser.add_argument(
        '--test-data',
        type=str,
        required=True,
        help='Test data in LETOR format'
    )
    parser.add_argument(
        '--k',
        type=int,
        default=10,
        help='NDCG cutoff'
    )
    parser.add_argument(
        '--cutoffs',
        type=int,
        nargs='*',
        default=[1, 3, 5],
        help='Additional NDCG cutoffs to report'
    )
    parser.add_argument(
        '--show-ranking',
        type=int,
        default=0,
        help='Print the predicted label order of the first N queries'
    )

    args = parser.parse_args()
    sys.exit(main(args))
