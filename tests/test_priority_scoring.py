"""Tests for advisory priority scoring."""

from datetime import UTC, datetime, timedelta

import pytest

from app.core.priority_scoring import (
    calculate_priority_score,
    days_since_registration,
    engagement_bonus,
)
from app.core.schemas_registrants import Registrant

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def _registrant(**overrides) -> Registrant:
    data = {
        "id": "reg-1",
        "name": "Ada",
        "email": "ada@example.com",
        "role": "Software Engineer",
        "accessId": "ABCD1234",
        "referralCode": "MFOUR-ABCDE",
        "waitlistPosition": 50,
        "createdAt": (NOW - timedelta(days=10.5)).isoformat(),
        "newsletter": True,
        "motivation": "m" * 80,
        "interestAreas": ["System Design", "Research", "Prompt Engineering", "AI/ML Engineering"],
    }
    data.update(overrides)
    return Registrant.model_validate(data)


def test_score_breakdown():
    score = calculate_priority_score(_registrant(), referral_count=2, now=NOW)

    assert score.user_id == "reg-1"
    assert score.base_score == 105
    assert score.referral_bonus == 40
    assert score.engagement_bonus == 20
    assert score.total_score == 165
    assert score.calculated_position == 46


def test_scoring_is_deterministic():
    registrant = _registrant()
    assert calculate_priority_score(registrant, 2, now=NOW) == calculate_priority_score(
        registrant, 2, now=NOW
    )


def test_one_more_referral_adds_20_points_and_two_positions():
    registrant = _registrant()
    before = calculate_priority_score(registrant, 2, now=NOW)
    after = calculate_priority_score(registrant, 3, now=NOW)

    assert after.total_score - before.total_score == 20
    assert before.calculated_position - after.calculated_position == 2


def test_calculated_position_never_below_one():
    score = calculate_priority_score(_registrant(waitlistPosition=3), 10, now=NOW)
    assert score.calculated_position == 1


def test_future_created_at_clamps_to_zero():
    registrant = _registrant(createdAt=(NOW + timedelta(days=2)).isoformat())
    assert days_since_registration(registrant.created_at, NOW) == 0
    assert calculate_priority_score(registrant, 0, now=NOW).base_score == 0


def test_engagement_thresholds():
    # Exactly 50 characters and exactly 2 interests do not qualify
    registrant = _registrant(
        newsletter=False,
        motivation="m" * 50,
        interestAreas=["System Design", "Research"],
    )
    assert engagement_bonus(registrant) == 0

    assert engagement_bonus(_registrant(newsletter=False, motivation="m" * 51, interestAreas=["Research"])) == 10
    assert engagement_bonus(_registrant(newsletter=False, motivation=None, interestAreas=["Research", "System Design", "Prompt Engineering"])) == 5


def test_negative_referral_count_rejected():
    with pytest.raises(ValueError):
        calculate_priority_score(_registrant(), -1, now=NOW)
