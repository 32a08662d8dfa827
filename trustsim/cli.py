"""
Command line entry point.

    python -m trustsim scenarios/honest_pool.yaml --samples 5
"""

import argparse
import json
import sys
from typing import List, Optional

from .assertions import format_assertion_results
from .errors import ValidationError
from .runner import run_batch, run_scenario
from .scenarios import load_scenario


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="trustsim",
        description="Simulate trust-weighted redundant verification of volunteer work.",
    )
    parser.add_argument("scenario", help="Path to a scenario YAML file")
    parser.add_argument("--seed", type=int, default=None,
                        help="Override the scenario seed")
    parser.add_argument("--samples", type=int, default=1,
                        help="Number of runs with consecutive seeds")
    parser.add_argument("--max-ticks", type=int, default=None,
                        help="Stop a run after this many ticks")
    parser.add_argument("--quiet", action="store_true",
                        help="Suppress per-tick progress output")
    parser.add_argument("--plot", default=None,
                        help="Write a trust score graph to this path (single run)")
    parser.add_argument("--confirmations", action="store_true",
                        help="Add the results-per-job ratio to the graph")
    parser.add_argument("--assignments", action="store_true",
                        help="Mark each job assignment on the trust graph")
    parser.add_argument("--telemetry", default=None,
                        help="Write tracked node series as JSON (single run)")
    parser.add_argument("--output", default=None,
                        help="Write run results as JSON")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        scenario = load_scenario(args.scenario)
    except (OSError, ValidationError) as e:
        print(f"Invalid scenario {args.scenario}: {e}", file=sys.stderr)
        return 2

    print("=" * 60)
    print(f"SCENARIO: {scenario.name}")
    if scenario.description:
        print(f"  {scenario.description}")
    print(f"Nodes: {scenario.node_count}, Jobs: {scenario.jobs.count}, "
          f"Samples: {args.samples}")
    print("=" * 60)

    if args.samples > 1:
        batch = run_batch(scenario, args.samples, base_seed=args.seed,
                          quiet=True, max_ticks=args.max_ticks)
        for run in batch.runs:
            print(run)
        print()
        print(batch)
        if args.output:
            _write_json(args.output, batch.to_dict())
        return 0 if batch.all_passed else 1

    result = run_scenario(scenario, seed=args.seed, quiet=args.quiet,
                          max_ticks=args.max_ticks)
    print(result.summary)
    if result.assertion_results:
        print(format_assertion_results(result.assertion_results))

    telemetry = result.simulation.telemetry
    if args.telemetry:
        telemetry.save_json(args.telemetry)
        print(f"Telemetry written to {args.telemetry}")
    if args.plot:
        from .plots import plot_trust
        plot_trust(telemetry, args.plot, include_confirmations=args.confirmations,
                   show_assignments=args.assignments)
        print(f"Graph written to {args.plot}")
    if args.output:
        _write_json(args.output, result.to_dict())

    return 0 if result.all_passed else 1


def _write_json(path: str, data: dict):
    with open(path, "w") as f:
        json.dump(data, f, indent=2)
    print(f"Results written to {path}")


if __name__ == "__main__":
    sys.exit(main())
