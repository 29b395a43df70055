"""Player list handling and group assignment."""

import re
from typing import Any, Dict, List

from crokinole_tournament.models import Player, coerce_positive


def build_players(count: Any) -> List[Player]:
    """Default player names P1..Pn"""
    try:
        n = max(0, int(count))
    except (TypeError, ValueError, OverflowError):
        n = 0
    return [f"P{i + 1}" for i in range(n)]


def split_names(text: str) -> List[Player]:
    """Names separated by commas or newlines, blanks dropped"""
    return [s.strip() for s in re.split(r"[\n,]+", text or "") if s.strip()]


def parse_player_names(text: str, count: Any) -> List[Player]:
    """Split entered names and auto-fill the missing ones as P{i}"""
    entered = split_names(text)
    try:
        total = max(0, int(count))
    except (TypeError, ValueError, OverflowError):
        total = 0

    players = list(entered)
    for i in range(len(entered), total):
        players.append(f"P{i + 1}")
    return players[:total]


def split_into_groups(players: List[Player], num_groups: Any) -> List[List[Player]]:
    """Deal players into groups like cards: player i goes to group i mod n"""
    n = coerce_positive(num_groups)
    groups: List[List[Player]] = [[] for _ in range(n)]
    for i, player in enumerate(players):
        groups[i % n].append(player)
    return groups


def player_group_map(groups: List[List[Player]]) -> Dict[Player, int]:
    """Player -> 1-based group number"""
    mapping = {}
    for group_idx, group in enumerate(groups):
        for player in group:
            mapping[player] = group_idx + 1
    return mapping
