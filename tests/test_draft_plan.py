"""Tests for per-format draft plans."""

import pytest

from map_veto.errors import InvalidFormat
from map_veto.models.map_pool import map_pool_size
from map_veto.models.match import ActionKind, MatchFormat
from map_veto.services.draft_plan import resolve_plan

BAN = ActionKind.BAN
PICK = ActionKind.PICK


def test_md1_is_six_bans():
    plan = resolve_plan("md1")
    assert plan.action_order == (BAN,) * 6
    assert plan.final_map_count == 1
    assert plan.total_picks == 0


def test_md3_bans_then_picks():
    plan = resolve_plan(MatchFormat.MD3)
    assert plan.action_order == (BAN, BAN, BAN, BAN, PICK, PICK)
    assert plan.final_map_count == 3


def test_md5_picks_around_bans():
    plan = resolve_plan("md5")
    assert plan.action_order == (PICK, PICK, BAN, BAN, PICK, PICK)
    assert plan.total_bans == 2
    assert plan.total_picks == 4


@pytest.mark.parametrize("fmt", list(MatchFormat))
def test_every_plan_bans_pool_down_to_final_maps(fmt):
    plan = resolve_plan(fmt)
    assert plan.total_bans + plan.final_map_count == map_pool_size()


@pytest.mark.parametrize("fmt", list(MatchFormat))
def test_every_plan_leaves_one_map_after_last_action(fmt):
    plan = resolve_plan(fmt)
    assert map_pool_size() - len(plan.action_order) == 1
    assert plan.total_picks + 1 == plan.final_map_count


def test_action_at_past_end_is_none():
    plan = resolve_plan("md3")
    assert plan.action_at(4) is PICK
    assert plan.action_at(6) is None


def test_unknown_format_raises():
    with pytest.raises(InvalidFormat):
        resolve_plan("bo3")
