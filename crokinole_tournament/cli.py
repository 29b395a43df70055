"""Command line interface and example configurations."""

import argparse
import json
import logging
import os
import sys
from typing import List, Optional

from crokinole_tournament.export import write_csv
from crokinole_tournament.models import TournamentConfig
from crokinole_tournament.roster import (
    build_players,
    parse_player_names,
    player_group_map,
    split_into_groups,
    split_names,
)
from crokinole_tournament.scheduling import (
    CrokinoleTournamentScheduler,
    ORToolsFeasibilityChecker,
    build_group_pairings,
)
from crokinole_tournament.validation import ConstraintValidator

logger = logging.getLogger(__name__)


def run_all_tests() -> bool:
    """Discover and run the unit tests under tests/"""
    import unittest

    project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    suite = unittest.TestLoader().discover(os.path.join(project_root, "tests"))
    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)
    return result.wasSuccessful()


def configure_logging(verbose: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )


def create_example_tournament() -> TournamentConfig:
    """Two groups of four sharing three boards over six rounds"""
    return TournamentConfig(
        name="Games on Tap - Crokinole Singles",
        players=build_players(8),
        num_groups=2,
        num_boards=3,
        num_rounds=6,
    )


def load_config(path: str) -> TournamentConfig:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return TournamentConfig.from_dict(data["tournament"])


def config_from_args(args: argparse.Namespace) -> TournamentConfig:
    count = args.players
    if count is None:
        count = len(split_names(args.names)) if args.names else 8
    return TournamentConfig(
        name=args.name,
        players=parse_player_names(args.names or "", count),
        num_groups=args.groups,
        num_boards=args.boards,
        num_rounds=args.rounds,
    )


def report_validation(result, config: TournamentConfig) -> bool:
    """Print PASSED/FAILED for each constraint family"""
    all_valid = True
    for label, valid, violations in ConstraintValidator.check_all_constraints(
        result, config
    ):
        print(f"✅ {label}: {'PASSED' if valid else 'FAILED'}")
        for violation in violations[:3]:
            print(f"   ❌ {violation}")
        all_valid = all_valid and valid

    print(
        f"\n🎯 Overall validation: {'✅ ALL CONSTRAINTS SATISFIED' if all_valid else '❌ CONSTRAINT VIOLATIONS FOUND'}"
    )
    return all_valid


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Crokinole Round-Robin Scheduler")
    parser.add_argument("--test", action="store_true", help="Run unit tests")
    parser.add_argument(
        "--run-example", action="store_true", help="Run example tournament"
    )
    parser.add_argument("--config", type=str, help="JSON configuration file")
    parser.add_argument("--save-example", type=str, help="Save example config to file")
    parser.add_argument("--export-csv", type=str, help="Export schedule to CSV file")
    parser.add_argument("--name", type=str, default="Crokinole Tournament")
    parser.add_argument("--players", type=int, help="Number of players")
    parser.add_argument(
        "--names", type=str, help="Player names separated by commas or newlines"
    )
    parser.add_argument("--groups", type=int, default=1, help="Number of groups")
    parser.add_argument("--boards", type=int, default=1, help="Number of boards")
    parser.add_argument("--rounds", type=int, default=1, help="Number of rounds")
    parser.add_argument(
        "--certify",
        action="store_true",
        help="Check the equalized target against an exact OR-Tools model",
    )
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main command line interface"""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    if args.test:
        print("🧪 Running unit tests...")
        return 0 if run_all_tests() else 1

    if args.save_example:
        config = create_example_tournament()
        with open(args.save_example, "w", encoding="utf-8") as f:
            json.dump({"tournament": config.to_dict()}, f, indent=2, ensure_ascii=False)
        print(f"📁 Example configuration saved to {args.save_example}")
        return 0

    if args.config:
        try:
            config = load_config(args.config)
        except (OSError, ValueError, KeyError, OverflowError) as e:
            print(f"❌ Error loading configuration: {e}")
            return 1
        print(f"📁 Loaded configuration from {args.config}")
    elif args.run_example:
        config = create_example_tournament()
        print(f"🎯 Using example tournament configuration")
    else:
        config = config_from_args(args)

    scheduler = CrokinoleTournamentScheduler()

    print(f"\n🚀 Generating tournament schedule...")
    result = scheduler.schedule_tournament(config)
    scheduler.print_schedule_summary(result, config)

    print(f"\n🔍 Validating tournament constraints...")
    all_valid = report_validation(result, config)

    if args.certify:
        groups = split_into_groups(config.players, config.num_groups)
        best = ORToolsFeasibilityChecker().max_equal_target(
            build_group_pairings(groups), config.num_boards, config.num_rounds
        )
        gap = best - result.target_games
        print(
            f"\n📐 Exact model: {best} games per player reachable "
            f"(greedy found {result.target_games}, gap {gap})"
        )

    if args.export_csv:
        groups = split_into_groups(config.players, config.num_groups)
        write_csv(args.export_csv, config.players, player_group_map(groups), result.rounds)
        print(f"💾 Schedule exported to {args.export_csv}")

    return 0 if all_valid else 1


if __name__ == "__main__":
    sys.exit(main())
