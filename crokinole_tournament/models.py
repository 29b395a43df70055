"""Data models for crokinole round-robin scheduling."""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional, Tuple

Player = str
Pair = Tuple[Player, Player]


def coerce_positive(value: Any, minimum: int = 1) -> int:
    """Coerce a user supplied count to an int no smaller than ``minimum``"""
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        return minimum
    return max(minimum, number)


@dataclass
class TournamentConfig:
    """Tournament configuration parameters"""

    name: str
    players: List[Player] = field(default_factory=list)
    num_groups: int = 1
    num_boards: int = 1
    num_rounds: int = 1

    def __post_init__(self):
        """Normalise configuration after initialization"""
        # Counts are coerced instead of rejected so every request yields a schedule
        self.num_groups = coerce_positive(self.num_groups)
        self.num_boards = coerce_positive(self.num_boards)
        self.num_rounds = coerce_positive(self.num_rounds)
        names = [str(p).strip() for p in self.players if str(p).strip()]
        self.players = list(dict.fromkeys(names))

    @property
    def player_count(self) -> int:
        return len(self.players)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TournamentConfig":
        """Build a config from the ``tournament`` section of a JSON file"""
        return cls(
            name=data.get("name", "Crokinole Tournament"),
            players=list(data.get("players", [])),
            num_groups=data.get("num_groups", 1),
            num_boards=data.get("num_boards", 1),
            num_rounds=data.get("num_rounds", 1),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Match:
    """A single game between two players on a board in a round"""

    round_number: int
    board: int
    player1: Player
    player2: Player
    group: int

    @property
    def pair_key(self) -> Tuple[Player, Player]:
        """Order independent key for the pairing"""
        return tuple(sorted((self.player1, self.player2)))

    def involves(self, player: Player) -> bool:
        return player in (self.player1, self.player2)

    def opponent_of(self, player: Player) -> Optional[Player]:
        if player == self.player1:
            return self.player2
        if player == self.player2:
            return self.player1
        return None

    def __str__(self):
        return f"Round {self.round_number} - Board {self.board} (Group {self.group}): {self.player1} vs {self.player2}"


Round = List[Match]
Schedule = List[Round]


@dataclass
class GroupPairing:
    """Round-robin output for one group"""

    group_index: int  # 1-based
    players: List[Player]
    rounds: List[List[Pair]]

    @property
    def pair_count(self) -> int:
        return sum(len(r) for r in self.rounds)


@dataclass
class ScheduleResult:
    """Result of schedule generation"""

    success: bool
    rounds: Schedule
    target_games: int
    upper_bound: int
    attempts: int
    generation_time: float  # seconds
    fallback: bool = False
    games_played: Dict[Player, int] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)

    @property
    def matches(self) -> List[Match]:
        """All matches in round then board order"""
        return [m for r in self.rounds for m in sorted(r, key=lambda m: m.board)]
