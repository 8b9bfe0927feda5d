"""
scripts/train.py - Training script for ltrnet rankers
"""

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import argparse
import logging

from ltrnet.config import load_config
from ltrnet.exceptions import LTRError
from ltrnet.model import read_letor
from ltrnet.trainer import Trainer


def main(args):
    """Main training function"""

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    print("=" * 70)
    print("ltrnet Training")
    print("=" * 70)

    overrides = {}
    if args.algorithm:
        overrides['algorithm'] = args.algorithm
    if args.epochs is not None:
        overrides['num_iterations'] = args.epochs
    if args.batch_size is not None:
        overrides['batch_size'] = args.batch_size

    try:
        config = load_config(args.config, **overrides)

        training_path = args.training or config.data_set.training
        validation_path = args.validation or config.data_set.validation or training_path
        if not training_path:
            print("Error: no training data given (--training or dataSet.training)")
            return 1

        print(f"\nLoading training data from {training_path}...")
        training = read_letor(training_path)
        print(f"Loading validation data from {validation_path}...")
        validation = read_letor(validation_path)
        print(f"Training queries: {len(training)}, Validation queries: {len(validation)}")

        if args.model:
            config = config.model_copy(update={'model': config.model.model_copy(update={'file': args.model})})
        if args.report:
            config = config.model_copy(update={'report': config.report.model_copy(update={'file': args.report})})

        trainer = Trainer(training, validation, config)

        print(f"\nTraining {config.algorithm} for {config.num_iterations} epochs...")
        trainer.train_and_validate()
    except (LTRError, OSError, ValueError) as e:
        print(f"Error: {e}")
        return 1

    print(f"\nBest NDCG@{trainer.ndcg_k}: {trainer.max_score:.4f}")
    print(f"Model saved to {trainer.model_file}")

    print("\n" + "=" * 70)
    print("Training completed successfully!")
    print("=" * 70)
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Train a learning-to-rank model")

    parser.add_argument(
        '--config',
        type=str,
        required=True,
        help='Path to JSON configuration file'
    )
    parser.add_argument(
        '--training',
        type=str,
        help='Training data in LETOR format (overrides dataSet.training)'
    )
    parser.add_argument(
        '--validation',
        type=str,
        help='Validation data in LETOR format (overrides dataSet.validation)'
    )
    parser.add_argument(
        '--algorithm',
        type=str,
        help='sortnet or mlp (overrides algorithm)'
    )
    parser.add_argument(
        '--epochs',
        type=int,
        help='Number of training epochs (overrides numIterations)'
    )
    parser.add_argument(
        '--batch-size',
        type=int,
        help='Batch size, 0 = one update per epoch (overrides batchSize)'
    )
    parser.add_argument(
        '--model',
        type=str,
        help='Output model file (overrides model.file)'
    )
    parser.add_argument(
        '--report',
        type=str,
        help='Output report CSV (overrides report.file)'
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Verbose logging'
    )

    args = parser.parse_args()
    sys.exit(main(args))
