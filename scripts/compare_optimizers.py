#!/usr/bin/env python3
"""
Optimizer Comparison Tool
Compare search engines side-by-side on built-in test problems
"""

import argparse
import json

from paramsearch.logging.logger_config import setup_logging
from paramsearch.optimization.benchmark import (
    TEST_PROBLEMS, DEFAULT_METHODS, compare_optimizers, summarize_comparison, make_test_problem
)
from paramsearch.optimization.registry import get_available_optimizers

def main():
    available = sorted(get_available_optimizers())
    parser = argparse.ArgumentParser(description='Compare Parameter Optimizers')

    parser.add_argument('methods', nargs='*', default=list(DEFAULT_METHODS),
                       help=f'Optimizers to compare (available: {", ".join(available)})')
    parser.add_argument('--problem', type=str, default='quadratic', choices=sorted(TEST_PROBLEMS),
                       help='Test problem to maximize (default: quadratic)')
    parser.add_argument('--dimensions', type=int, default=2,
                       help='Number of parameters (default: 2)')
    parser.add_argument('--max-evaluations', type=int, default=60,
                       help='Evaluation budget per run (default: 60)')
    parser.add_argument('--trials', type=int, default=10,
                       help='Repeated runs per optimizer (default: 10)')
    parser.add_argument('--seed', type=int, default=None,
                       help='Seed for reproducible comparisons')
    parser.add_argument('--log-level', type=str, default='WARNING',
                       help='Log level (default: WARNING)')
    parser.add_argument('--json', action='store_true',
                       help='Print the summary as JSON')

    args = parser.parse_args()
    setup_logging(args.log_level)

    params = make_test_problem(args.problem, args.dimensions, args.max_evaluations)
    results = compare_optimizers(params, methods=args.methods, trials=args.trials, seed=args.seed)
    summary = summarize_comparison(results)

    if args.json:
        print(json.dumps(summary.reset_index().to_dict(orient='records'), indent=2))
        return

    print(f"\nProblem: {args.problem} ({args.dimensions}D), "
          f"{args.max_evaluations} evaluations, {args.trials} trials")
    print("=" * 72)
    print(summary.to_string(float_format=lambda v: f"{v:.6f}"))

if __name__ == "__main__":
    main()
