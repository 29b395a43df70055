"""CSV export of a finished schedule, one row per player per round."""

import csv
import io
from typing import Dict, List

from crokinole_tournament.models import Player, Schedule

CSV_HEADER = ["Round", "Board", "Group", "Player", "Opponent"]
OFF = "OFF"


def schedule_rows(
    players: List[Player], player_groups: Dict[Player, int], schedule: Schedule
) -> List[List]:
    """Flatten the schedule; players without a match get an OFF row"""
    rows = []
    for round_idx, matches in enumerate(schedule, 1):
        assigned = {}
        for match in matches:
            assigned[match.player1] = (match.board, match.group, match.player2)
            assigned[match.player2] = (match.board, match.group, match.player1)

        for player in players:
            if player in assigned:
                board, group, opponent = assigned[player]
                rows.append([round_idx, board, group, player, opponent])
            else:
                rows.append([round_idx, OFF, player_groups.get(player, ""), player, ""])
    return rows


def to_csv_with_off(
    players: List[Player], player_groups: Dict[Player, int], schedule: Schedule
) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    writer.writerows(schedule_rows(players, player_groups, schedule))
    return buffer.getvalue()


def write_csv(
    filename: str,
    players: List[Player],
    player_groups: Dict[Player, int],
    schedule: Schedule,
) -> None:
    with open(filename, "w", newline="", encoding="utf-8") as f:
        f.write(to_csv_with_off(players, player_groups, schedule))


def games_played_from_csv(text: str) -> Dict[Player, int]:
    """Re-derive per-player game counts from exported CSV text"""
    counts: Dict[Player, int] = {}
    for row in csv.DictReader(io.StringIO(text)):
        player = row["Player"]
        counts.setdefault(player, 0)
        if row["Board"] != OFF:
            counts[player] += 1
    return counts
