"""
XP values, level derivation and skins.
"""
import pytest

from services.gamification import (
    XPAction, XP_VALUES, SKINS, SKINS_BY_ID, xp_for, level_for_xp, xp_in_level, xp_to_next_level,
    motivational_message,
)
from services.xp_service import XPStatus


def test_every_action_has_a_fixed_value():
    assert set(XP_VALUES) == set(XPAction)
    assert xp_for(XPAction.document_upload) == 10
    assert xp_for(XPAction.generate_exercises) == 15
    assert xp_for(XPAction.generate_summary) == 15
    assert xp_for(XPAction.generate_control) == 40
    assert xp_for("login") == 5
    assert xp_for("comment") == 5
    assert xp_for("document_share") == 5


def test_unknown_action_is_rejected():
    with pytest.raises(ValueError):
        xp_for("teleport")


@pytest.mark.parametrize("xp, level", [(0, 1), (99, 1), (100, 2), (250, 3), (1499, 15)])
def test_level_is_derived_from_xp(xp, level):
    assert level_for_xp(xp) == level


def test_progress_within_level():
    assert xp_in_level(245) == 45
    assert xp_to_next_level(245) == 55
    assert xp_to_next_level(300) == 100


def test_motivational_message_buckets():
    messages = {motivational_message(xp) for xp in (10, 30, 60, 90)}
    assert len(messages) == 4


def test_status_from_xp():
    status = XPStatus.from_xp(130)
    assert (status.xp, status.level, status.xp_in_level, status.xp_to_next_level) == (130, 2, 30, 70)


def test_skins_unlock_by_level():
    assert [skin.required_level for skin in SKINS] == [1, 3, 5, 10, 15]
    assert SKINS_BY_ID["base"].is_unlocked(1)
    assert not SKINS_BY_ID["expert"].is_unlocked(9)
    assert SKINS_BY_ID["expert"].is_unlocked(10)
