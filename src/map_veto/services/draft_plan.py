"""Ban/pick plans per match format."""

from dataclasses import dataclass

from map_veto.errors import InvalidFormat
from map_veto.models.map_pool import map_pool_size
from map_veto.models.match import ActionKind, MatchFormat

BAN = ActionKind.BAN
PICK = ActionKind.PICK


@dataclass(frozen=True)
class DraftPlan:
    """Ordered draft actions for a match format and the maps they leave."""

    match_format: MatchFormat
    action_order: tuple[ActionKind, ...]
    final_map_count: int

    @property
    def total_bans(self) -> int:
        return sum(1 for a in self.action_order if a is BAN)

    @property
    def total_picks(self) -> int:
        return sum(1 for a in self.action_order if a is PICK)

    def action_at(self, index: int) -> ActionKind | None:
        """Action required after `index` actions, None once the plan is consumed."""
        if 0 <= index < len(self.action_order):
            return self.action_order[index]
        return None

    def to_dict(self) -> dict:
        return {
            "match_format": self.match_format.value,
            "action_order": [a.value for a in self.action_order],
            "final_map_count": self.final_map_count,
            "total_bans": self.total_bans,
            "total_picks": self.total_picks,
        }


_PLANS: dict[MatchFormat, DraftPlan] = {
    MatchFormat.MD1: DraftPlan(MatchFormat.MD1, (BAN,) * 6, 1),
    MatchFormat.MD3: DraftPlan(MatchFormat.MD3, (BAN, BAN, BAN, BAN, PICK, PICK), 3),
    MatchFormat.MD5: DraftPlan(MatchFormat.MD5, (PICK, PICK, BAN, BAN, PICK, PICK), 5),
}

def _check_plans() -> None:
    # Picks are both actions and final maps, so only bans leave the pool.
    for plan in _PLANS.values():
        if plan.total_bans + plan.final_map_count != map_pool_size():
            raise RuntimeError(
                f"Draft plan {plan.match_format.value} bans {plan.total_bans} maps and keeps "
                f"{plan.final_map_count}, but the pool holds {map_pool_size()}"
            )


_check_plans()


def resolve_plan(match_format: MatchFormat | str) -> DraftPlan:
    """Plan for a match format.

    Raises:
        InvalidFormat: If the format is not md1, md3 or md5.
    """
    try:
        key = MatchFormat(match_format)
    except ValueError:
        raise InvalidFormat(f"Unknown match format: {match_format!r}") from None
    return _PLANS[key]
