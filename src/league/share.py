from typing import List, Sequence

from league.models import Match, PlayerStat, Team
from league.ranking import match_outcome

TOP_N = 5


def team_label(team: Team) -> str:
    return " & ".join(p.name for p in team.members)


def _result_label(match: Match) -> str:
    outcome = match_outcome(match)
    if outcome is None:
        return "Draw"
    return "Team A wins" if outcome[0] is match.team_a else "Team B wins"


def build_share_text(
    league_name: str, date: str, matches: Sequence[Match], ranking: Sequence[PlayerStat],
) -> str:
    """Plain-text results of one league day, ready to paste into a chat."""
    lines: List[str] = [f"[{league_name}]", f"Results {date}", ""]

    finished = [m for m in matches if m.date == date and m.is_finished]
    if finished:
        lines.append("=== Results ===")
        for i, m in enumerate(finished, start=1):
            lines.append(f"GAME {i}: {team_label(m.team_a)} vs {team_label(m.team_b)}")
            lines.append(f"Score: {m.score_a} : {m.score_b} ({_result_label(m)})")
            lines.append("")
    else:
        lines.append("No finished matches.")
        lines.append("")

    top = list(ranking)[:TOP_N]
    if top:
        lines.append(f"=== Top {TOP_N} ===")
        for i, s in enumerate(top, start=1):
            lines.append(f"{i}. {s.name} ({s.total_points} pts, win rate {round(s.win_rate)}%)")
        lines.append("")

    lines.append("Tennis League Manager")
    return "\n".join(lines)
