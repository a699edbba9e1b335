"""Advisory priority scoring for waitlist registrants.

The score is a pure function of the registrant, their referral count and the
evaluation time. It never changes the stored waitlistPosition.
"""

import math
from datetime import datetime
from typing import Optional

from app.core.schemas_registrants import PriorityScore, Registrant
from app.core.timestamps import parse_timestamp, utc_now

POINTS_PER_DAY = 10
POINTS_PER_REFERRAL = 20
POSITIONS_PER_REFERRAL = 2

NEWSLETTER_BONUS = 5
MOTIVATION_BONUS = 10
MOTIVATION_MIN_LENGTH = 50
INTERESTS_BONUS = 5
INTERESTS_MIN_COUNT = 3

SECONDS_PER_DAY = 24 * 60 * 60


def days_since_registration(created_at: Optional[datetime], now: datetime) -> float:
    """Fractional days since registration; future timestamps clamp to zero."""
    created = parse_timestamp(created_at)
    if created is None:
        return 0.0
    return max(0.0, (now - created).total_seconds() / SECONDS_PER_DAY)


def engagement_bonus(registrant: Registrant) -> int:
    """Newsletter opt-in, a substantive motivation and broad interests (max 20)."""
    bonus = 0
    if registrant.newsletter:
        bonus += NEWSLETTER_BONUS
    if registrant.motivation and len(registrant.motivation) > MOTIVATION_MIN_LENGTH:
        bonus += MOTIVATION_BONUS
    if len(registrant.interest_areas) >= INTERESTS_MIN_COUNT:
        bonus += INTERESTS_BONUS
    return bonus


def calculate_priority_score(
    registrant: Registrant,
    referral_count: int,
    now: Optional[datetime] = None,
) -> PriorityScore:
    """
    Score a registrant for advisory re-ranking.

    Args:
        registrant: Stored registrant
        referral_count: Registrants whose referredBy is this registrant's code
        now: Evaluation time; pass it explicitly for reproducible results

    Returns:
        PriorityScore with the score breakdown and suggested position

    Raises:
        ValueError: If referral_count is negative
    """
    if referral_count < 0:
        raise ValueError("referral_count must be >= 0")

    now = now or utc_now()
    base_score = math.floor(days_since_registration(registrant.created_at, now) * POINTS_PER_DAY)
    referral_bonus = referral_count * POINTS_PER_REFERRAL
    bonus = engagement_bonus(registrant)

    return PriorityScore(
        user_id=registrant.id or registrant.access_id,
        base_score=base_score,
        referral_bonus=referral_bonus,
        engagement_bonus=bonus,
        total_score=base_score + referral_bonus + bonus,
        calculated_position=max(
            1, registrant.waitlist_position - referral_count * POSITIONS_PER_REFERRAL
        ),
    )
