"""Constraint validation for tournament schedules."""

from typing import List, Tuple
from collections import defaultdict

from crokinole_tournament.models import Player, Schedule, ScheduleResult, TournamentConfig
from crokinole_tournament.scheduling import compute_games_played


class ConstraintValidator:
    """Helper class to validate tournament constraints"""

    @staticmethod
    def validate_board_capacity(rounds: Schedule, boards: int) -> Tuple[bool, List[str]]:
        """Validate that no round uses more boards than are available"""
        violations = []

        for round_idx, matches in enumerate(rounds, 1):
            if len(matches) > boards:
                violations.append(
                    f"Round {round_idx}: {len(matches)} matches but only {boards} boards"
                )

        return len(violations) == 0, violations

    @staticmethod
    def validate_round_exclusivity(rounds: Schedule) -> Tuple[bool, List[str]]:
        """Validate that no player is booked twice in the same round"""
        violations = []

        for round_idx, matches in enumerate(rounds, 1):
            appearances = defaultdict(int)
            for match in matches:
                appearances[match.player1] += 1
                appearances[match.player2] += 1

            for player, count in appearances.items():
                if count > 1:
                    violations.append(
                        f"Player {player}: plays {count} matches in round {round_idx}"
                    )

        return len(violations) == 0, violations

    @staticmethod
    def validate_no_rematches(rounds: Schedule) -> Tuple[bool, List[str]]:
        """Validate that every pairing happens at most once across the schedule"""
        violations = []
        first_seen = {}

        for round_idx, matches in enumerate(rounds, 1):
            for match in matches:
                if match.player1 == match.player2:
                    violations.append(
                        f"Round {round_idx}: {match.player1} is paired with themselves"
                    )
                    continue

                key = match.pair_key
                if key in first_seen:
                    violations.append(
                        f"Rematch {key[0]} vs {key[1]}: rounds {first_seen[key]} and {round_idx}"
                    )
                else:
                    first_seen[key] = round_idx

        return len(violations) == 0, violations

    @staticmethod
    def validate_board_numbers(rounds: Schedule) -> Tuple[bool, List[str]]:
        """Validate that boards in each round are numbered 1..n without gaps or repeats"""
        violations = []

        for round_idx, matches in enumerate(rounds, 1):
            boards = sorted(match.board for match in matches)
            if boards != list(range(1, len(matches) + 1)):
                violations.append(f"Round {round_idx}: board numbers {boards}")

            for match in matches:
                if match.round_number != round_idx:
                    violations.append(
                        f"Round {round_idx}: match labelled as round {match.round_number}"
                    )

        return len(violations) == 0, violations

    @staticmethod
    def validate_equal_games(
        players: List[Player], rounds: Schedule, target: int
    ) -> Tuple[bool, List[str]]:
        """Validate that every player plays exactly the target number of games"""
        violations = []

        for player, count in compute_games_played(players, rounds).items():
            if count != target:
                violations.append(
                    f"Player {player}: {count} games scheduled (target {target})"
                )

        return len(violations) == 0, violations

    @staticmethod
    def check_all_constraints(
        result: ScheduleResult, config: TournamentConfig
    ) -> List[Tuple[str, bool, List[str]]]:
        """Run every constraint check, labelled for reporting"""
        checks = [
            (
                "Board capacity",
                ConstraintValidator.validate_board_capacity(
                    result.rounds, config.num_boards
                ),
            ),
            (
                "One match per player per round",
                ConstraintValidator.validate_round_exclusivity(result.rounds),
            ),
            ("No rematches", ConstraintValidator.validate_no_rematches(result.rounds)),
            ("Board numbering", ConstraintValidator.validate_board_numbers(result.rounds)),
        ]

        # The empty fallback schedule is valid but carries no equal-games promise
        if result.success:
            checks.append(
                (
                    "Equal games",
                    ConstraintValidator.validate_equal_games(
                        config.players, result.rounds, result.target_games
                    ),
                )
            )

        return [(label, valid, violations) for label, (valid, violations) in checks]

    @staticmethod
    def validate_all_constraints(
        result: ScheduleResult, config: TournamentConfig
    ) -> Tuple[bool, List[str]]:
        """Validate all constraints at once"""
        all_violations = []
        overall_valid = True

        for _, valid, violations in ConstraintValidator.check_all_constraints(
            result, config
        ):
            all_violations.extend(violations)
            overall_valid = overall_valid and valid

        return overall_valid, all_violations
