"""Random team formation and captain election."""

import logging
import random

from map_veto.errors import InvalidFormat, RosterSizeMismatch
from map_veto.models.match import Player, Team, TeamFormat

logger = logging.getLogger(__name__)

REQUIRED_PLAYERS: dict[TeamFormat, int] = {
    TeamFormat.TWO_V_TWO: 4,
    TeamFormat.THREE_V_THREE: 6,
    TeamFormat.FOUR_V_FOUR: 8,
    TeamFormat.FIVE_V_FIVE: 10,
}


def parse_team_format(team_format: TeamFormat | str) -> TeamFormat:
    try:
        return TeamFormat(team_format)
    except ValueError:
        raise InvalidFormat(f"Unknown team format: {team_format!r}") from None


def required_players(team_format: TeamFormat | str) -> int:
    """Roster size required for a team format (2v2 -> 4, ..., 5v5 -> 10)."""
    return REQUIRED_PLAYERS[parse_team_format(team_format)]


def form_teams(
    roster: list[Player],
    team_format: TeamFormat | str,
    team_a_name: str,
    team_b_name: str,
    rng: random.Random | None = None,
) -> tuple[Team, Team]:
    """Split the roster into two random halves and elect a captain for each.

    Every call is an independent draw: the roster is shuffled uniformly, the
    first half goes to team A, the second to team B, and each team's captain is
    chosen uniformly among its members.

    Args:
        roster: Snapshot of the room roster
        team_format: Team format deciding the required roster size
        team_a_name: Display name for team A
        team_b_name: Display name for team B
        rng: Random source, module-level random when omitted

    Returns:
        (team_a, team_b)

    Raises:
        InvalidFormat: Unknown team format
        RosterSizeMismatch: Roster size differs from the format's requirement
    """
    required = required_players(team_format)
    if len(roster) != required:
        raise RosterSizeMismatch(required, len(roster))

    rng = rng or random
    shuffled = list(roster)
    rng.shuffle(shuffled)

    per_team = required // 2
    a_players = shuffled[:per_team]
    b_players = shuffled[per_team:]

    team_a = Team(name=team_a_name, players=a_players, captain_id=rng.choice(a_players).session_id)
    team_b = Team(name=team_b_name, players=b_players, captain_id=rng.choice(b_players).session_id)

    logger.info(
        f"Formed {parse_team_format(team_format).value} teams: "
        f"captains {team_a.captain_id} / {team_b.captain_id}"
    )
    return team_a, team_b
