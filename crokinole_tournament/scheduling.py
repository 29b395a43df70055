"""Core scheduling logic: round-robin pairing, equalized schedule building and board rebalancing."""

import time as time_module
import logging
from collections import defaultdict
from dataclasses import replace
from itertools import combinations
from typing import Dict, List, Optional, Sequence, Tuple

from ortools.sat.python import cp_model

from crokinole_tournament.models import (
    GroupPairing,
    Match,
    Pair,
    Player,
    Schedule,
    ScheduleResult,
    TournamentConfig,
    coerce_positive,
)
from crokinole_tournament.roster import player_group_map, split_into_groups

logger = logging.getLogger(__name__)

# Placeholder that pads odd groups; never compares equal to a real player name
BYE = object()

Candidate = Tuple[Player, Player, int]


class TournamentCalculator:
    """Calculate round-robin sizes and game targets"""

    @staticmethod
    def calculate_pool_matches(players_per_group: int) -> int:
        """Calculate number of pairings in a group with round-robin format"""
        if players_per_group < 2:
            return 0
        return players_per_group * (players_per_group - 1) // 2

    @staticmethod
    def calculate_round_robin_rounds(players_per_group: int) -> int:
        """Rounds needed for one full cycle (odd groups need an extra round for the bye)"""
        if players_per_group <= 0:
            return 0
        if players_per_group % 2 == 1:
            return players_per_group
        return players_per_group - 1

    @staticmethod
    def target_upper_bound(
        group_sizes: Sequence[int], boards: int, rounds: int
    ) -> int:
        """Highest per-player game count worth attempting.

        The minimum of three caps:
        - board capacity: match seats available divided evenly among players
        - rounds: at most one game per round
        - opponents: nobody can play more games than they have group mates
        """
        total_players = sum(group_sizes) or 1
        cap_by_boards = (boards * rounds * 2) // total_players
        cap_by_rounds = rounds
        cap_by_opponents = (
            min(max(0, size - 1) for size in group_sizes) if group_sizes else 0
        )
        return max(0, min(cap_by_boards, cap_by_rounds, cap_by_opponents))


class RoundRobinPairer:
    """Generate circle-method round-robin pairings per group"""

    @staticmethod
    def generate_pairings(group: Sequence[Player]) -> List[List[Pair]]:
        """Circle method: fix the first slot and rotate everybody else one step per round.

        Odd groups get a BYE slot; whoever meets the BYE sits that round out, so
        each round holds floor(k/2) pairs.
        """
        slots = list(group)
        if len(slots) % 2 == 1:
            slots.append(BYE)

        half = len(slots) // 2
        rounds = []
        for _ in range(len(slots) - 1):
            front = slots[:half]
            back = slots[half:][::-1]
            rounds.append(
                [
                    (p1, p2)
                    for p1, p2 in zip(front, back)
                    if p1 is not BYE and p2 is not BYE
                ]
            )
            slots = [slots[0], slots[-1]] + slots[1:-1]
        return rounds

    def build_group_pairings(self, groups: List[List[Player]]) -> List[GroupPairing]:
        pairings = []
        for group_idx, group in enumerate(groups):
            members = list(dict.fromkeys(group))
            pairings.append(
                GroupPairing(
                    group_index=group_idx + 1,
                    players=members,
                    rounds=self.generate_pairings(members),
                )
            )
        return pairings


class ScheduleBuilder:
    """Pack intra-group pairings into rounds and boards with equal games per player"""

    def __init__(
        self, group_pairings: Sequence[GroupPairing], boards, rounds
    ):
        self.group_pairings = list(group_pairings)
        self.boards = coerce_positive(boards)
        self.total_rounds = coerce_positive(rounds)

        # Repeated names collapse to their first group so groups stay a partition
        seen = set()
        self.group_members: List[Tuple[int, List[Player]]] = []
        for gp in self.group_pairings:
            members = [p for p in dict.fromkeys(gp.players) if p not in seen]
            seen.update(members)
            self.group_members.append((gp.group_index, members))

        self.players: List[Player] = [
            p for _, members in self.group_members for p in members
        ]
        self.candidates: List[Candidate] = [
            (a, b, group_index)
            for group_index, members in self.group_members
            for a, b in combinations(members, 2)
            if a != b
        ]

    def upper_bound(self) -> int:
        return TournamentCalculator.target_upper_bound(
            [len(members) for _, members in self.group_members],
            self.boards,
            self.total_rounds,
        )

    def empty_schedule(self) -> Schedule:
        return [[] for _ in range(self.total_rounds)]

    def build(self) -> ScheduleResult:
        """Find the highest target every player can reach, lowering it until one attempt succeeds"""
        start_time = time_module.time()
        upper = self.upper_bound()
        attempts = 0

        if self.players:
            for target in range(upper, -1, -1):
                attempts += 1
                equal, rounds = self.try_build(target)
                if equal:
                    logger.info(
                        f"✅ Equalized schedule at {target} games per player "
                        f"(upper bound {upper}, {attempts} attempt(s))"
                    )
                    return ScheduleResult(
                        success=True,
                        rounds=rounds,
                        target_games=target,
                        upper_bound=upper,
                        attempts=attempts,
                        generation_time=time_module.time() - start_time,
                    )
                logger.debug(
                    f"Target of {target} games could not be equalized, lowering target"
                )

        warning = (
            "No players to schedule"
            if not self.players
            else "Could not equalize games at any target"
        )
        logger.warning(f"⚠️  {warning}; returning {self.total_rounds} empty rounds")
        return ScheduleResult(
            success=False,
            rounds=self.empty_schedule(),
            target_games=0,
            upper_bound=upper,
            attempts=attempts,
            generation_time=time_module.time() - start_time,
            fallback=True,
            warnings=[warning],
        )

    def try_build(self, target_games: int) -> Tuple[bool, Schedule]:
        """One greedy pass at a fixed target. Returns (every player hit the target, rounds)"""
        games_played: Dict[Player, int] = {p: 0 for p in self.players}
        last_played_round: Dict[Player, int] = {p: 0 for p in self.players}
        pair_history = set()
        schedule: Schedule = []

        for round_number in range(1, self.total_rounds + 1):
            available = [
                c
                for c in self.candidates
                if frozenset(c[:2]) not in pair_history
                and games_played[c[0]] < target_games
                and games_played[c[1]] < target_games
            ]

            def sat_out(player: Player) -> bool:
                if round_number == 1:
                    return False
                return last_played_round[player] != round_number - 1

            def priority(candidate: Candidate) -> Tuple[int, int, int]:
                a, b, _ = candidate
                need_a = target_games - games_played[a]
                need_b = target_games - games_played[b]
                return (sat_out(a) + sat_out(b), need_a + need_b, max(need_a, need_b))

            # sorted() stays stable with reverse=True, so ties keep generation order
            ranked = sorted(available, key=priority, reverse=True)

            used_this_round = set()
            round_matches: List[Match] = []
            for a, b, group in ranked:
                if len(round_matches) >= self.boards:
                    break
                if a in used_this_round or b in used_this_round:
                    continue
                round_matches.append(
                    Match(
                        round_number=round_number,
                        board=len(round_matches) + 1,
                        player1=a,
                        player2=b,
                        group=group,
                    )
                )
                used_this_round.update((a, b))

            for match in round_matches:
                pair_history.add(frozenset((match.player1, match.player2)))
                for player in (match.player1, match.player2):
                    games_played[player] += 1
                    last_played_round[player] = round_number

            schedule.append(round_matches)

        counts = list(games_played.values())
        equal = bool(counts) and min(counts) == max(counts) == target_games
        return equal, schedule


class BoardRebalancer:
    """Swap board numbers inside each round so players rarely sit at the same board twice in a row"""

    MAX_PASSES = 10

    @staticmethod
    def conflict_score(match: Match, last_board: Dict[Player, int]) -> int:
        """Players of this match whose previous board is this match's board (0-2)"""
        score = 0
        if last_board.get(match.player1) == match.board:
            score += 1
        if last_board.get(match.player2) == match.board:
            score += 1
        return score

    @classmethod
    def conflict_scores(cls, schedule: Schedule) -> List[int]:
        """Per-round conflict totals, each measured against the boards players last used"""
        last_board: Dict[Player, int] = {}
        scores = []
        for matches in schedule:
            scores.append(sum(cls.conflict_score(m, last_board) for m in matches))
            cls._record_boards(matches, last_board)
        return scores

    @staticmethod
    def _record_boards(matches: List[Match], last_board: Dict[Player, int]):
        for match in matches:
            last_board[match.player1] = match.board
            last_board[match.player2] = match.board

    def rebalance(self, schedule: Schedule) -> Schedule:
        """Return a copy of the schedule with board labels shuffled within rounds"""
        rounds = [[replace(m) for m in matches] for matches in schedule]
        last_board: Dict[Player, int] = {}

        for matches in rounds:
            passes = self._improve_round(matches, last_board)
            if matches:
                logger.debug(
                    f"Round {matches[0].round_number}: boards settled after {passes} pass(es)"
                )
            matches.sort(key=lambda m: m.board)
            self._record_boards(matches, last_board)

        return rounds

    def _improve_round(self, matches: List[Match], last_board: Dict[Player, int]) -> int:
        """Hill-climb over pairwise board swaps; returns the number of passes made"""
        passes = 0
        improved = True
        while improved and passes < self.MAX_PASSES:
            improved = False
            passes += 1
            for m1, m2 in combinations(matches, 2):
                before = self.conflict_score(m1, last_board) + self.conflict_score(
                    m2, last_board
                )
                m1.board, m2.board = m2.board, m1.board
                after = self.conflict_score(m1, last_board) + self.conflict_score(
                    m2, last_board
                )
                if after < before:
                    improved = True
                else:
                    m1.board, m2.board = m2.board, m1.board
        return passes


def compute_games_played(players: Sequence[Player], schedule: Schedule) -> Dict[Player, int]:
    """Rounds each listed player appears in; absent rounds count as OFF"""
    counts = {p: 0 for p in players}
    for matches in schedule:
        playing = set()
        for match in matches:
            playing.add(match.player1)
            playing.add(match.player2)
        for player in playing:
            if player in counts:
                counts[player] += 1
    return counts


def generate_pairings(group: Sequence[Player]) -> List[List[Pair]]:
    return RoundRobinPairer.generate_pairings(group)


def build_group_pairings(groups: List[List[Player]]) -> List[GroupPairing]:
    return RoundRobinPairer().build_group_pairings(groups)


def build_schedule(group_pairings: Sequence[GroupPairing], boards, rounds) -> Schedule:
    return ScheduleBuilder(group_pairings, boards, rounds).build().rounds


def rebalance_boards(schedule: Schedule) -> Schedule:
    return BoardRebalancer().rebalance(schedule)


class ORToolsFeasibilityChecker:
    """OR-Tools CP-SAT check of how many equal games any schedule could give.

    The greedy builder can miss targets that are actually reachable; this
    solves the same packing exactly so the gap can be reported.
    """

    def __init__(self, time_limit: float = 10.0):
        self.time_limit = time_limit

    def is_feasible(
        self, group_pairings: Sequence[GroupPairing], boards, rounds, target_games: int
    ) -> Optional[bool]:
        """True/False when proven, None when the solver ran out of time"""
        builder = ScheduleBuilder(group_pairings, boards, rounds)
        if not builder.players:
            return False

        player_to_candidates = defaultdict(list)
        for idx, (a, b, _) in enumerate(builder.candidates):
            player_to_candidates[a].append(idx)
            player_to_candidates[b].append(idx)

        if target_games > 0 and any(
            not player_to_candidates[p] for p in builder.players
        ):
            return False

        model = cp_model.CpModel()
        round_range = range(builder.total_rounds)
        plays = {}
        for idx in range(len(builder.candidates)):
            for r in round_range:
                plays[idx, r] = model.new_bool_var(f"pair_{idx}_round_{r}")

        # Constraint 1: No rematches
        for idx in range(len(builder.candidates)):
            model.add(sum(plays[idx, r] for r in round_range) <= 1)

        if builder.candidates:
            # Constraint 2: Board capacity per round
            for r in round_range:
                model.add(
                    sum(plays[idx, r] for idx in range(len(builder.candidates)))
                    <= builder.boards
                )

        for player in builder.players:
            indices = player_to_candidates[player]
            if not indices:
                continue
            # Constraint 3: One game per player per round
            for r in round_range:
                model.add(sum(plays[idx, r] for idx in indices) <= 1)
            # Constraint 4: Exactly the target number of games
            model.add(
                sum(plays[idx, r] for idx in indices for r in round_range)
                == target_games
            )

        solver = cp_model.CpSolver()
        solver.parameters.max_time_in_seconds = self.time_limit
        status = solver.solve(model)

        if status in (cp_model.OPTIMAL, cp_model.FEASIBLE):
            return True
        if status == cp_model.INFEASIBLE:
            return False
        logger.warning(
            f"⚠️  Solver could not decide target {target_games}: {solver.status_name(status)}"
        )
        return None

    def max_equal_target(
        self, group_pairings: Sequence[GroupPairing], boards, rounds
    ) -> int:
        """Largest provably reachable equal target (0 when nothing is reachable)"""
        builder = ScheduleBuilder(group_pairings, boards, rounds)
        for target in range(builder.upper_bound(), 0, -1):
            if self.is_feasible(group_pairings, boards, rounds, target):
                return target
        return 0


class CrokinoleTournamentScheduler:
    """Main scheduler class: partition, pair, build, rebalance"""

    def __init__(self):
        self.pairer = RoundRobinPairer()
        self.rebalancer = BoardRebalancer()

    def schedule_tournament(self, config: TournamentConfig) -> ScheduleResult:
        """Generate complete tournament schedule"""
        logger.info(f"Starting schedule generation for tournament: {config.name}")

        groups = split_into_groups(config.players, config.num_groups)
        group_pairings = self.pairer.build_group_pairings(groups)
        for gp in group_pairings:
            logger.info(
                f"📊 Group {gp.group_index}: {len(gp.players)} players, "
                f"{gp.pair_count} pairings over {len(gp.rounds)} round-robin rounds"
            )

        result = ScheduleBuilder(
            group_pairings, config.num_boards, config.num_rounds
        ).build()

        conflicts_before = sum(BoardRebalancer.conflict_scores(result.rounds))
        result.rounds = self.rebalancer.rebalance(result.rounds)
        conflicts_after = sum(BoardRebalancer.conflict_scores(result.rounds))
        logger.info(
            f"🎯 Board repeats: {conflicts_before} before rebalancing, {conflicts_after} after"
        )

        result.games_played = compute_games_played(config.players, result.rounds)

        if result.success:
            logger.info(
                f"✅ Schedule generated in {result.generation_time:.2f} seconds: "
                f"{len(result.matches)} matches, {result.target_games} games per player"
            )
        else:
            logger.error(f"❌ Failed to equalize games: {', '.join(result.warnings)}")

        return result

    def print_schedule_summary(self, result: ScheduleResult, config: TournamentConfig):
        """Print the match overview and per-player totals"""
        print(f"\n🥏 Tournament Schedule: {config.name}")
        print("=" * 80)
        print(f"📊 Summary:")
        print(f"   • Players: {config.player_count} in {config.num_groups} group(s)")
        print(f"   • Boards: {config.num_boards}, Rounds: {config.num_rounds}")
        print(f"   • Total matches: {len(result.matches)}")
        print(
            f"   • Games per player: {result.target_games} (upper bound {result.upper_bound})"
        )
        print(f"   • Generation time: {result.generation_time:.2f} seconds")

        if result.warnings:
            print(f"\n⚠️  Warnings:")
            for warning in result.warnings:
                print(f"   • {warning}")

        print(f"\n📅 MATCH OVERVIEW:")
        print("-" * 60)
        for round_idx, matches in enumerate(result.rounds, 1):
            print(f"Round {round_idx}:")
            if not matches:
                print("   (no matches)")
            for match in sorted(matches, key=lambda m: m.board):
                print(
                    f"   Board {match.board:<3} | Group {match.group:<3} | {match.player1} vs {match.player2}"
                )

        groups = player_group_map(split_into_groups(config.players, config.num_groups))
        print(f"\n🏁 PLAYER GAME TOTALS:")
        print("-" * 60)
        for player in sorted(config.players, key=lambda p: groups.get(p, 0)):
            print(
                f"   {player:20} | Group {groups.get(player, ''):<3} | {result.games_played.get(player, 0)} games"
            )
