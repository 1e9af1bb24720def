"""
Couple ("world") onboarding helpers: invite codes, world names, milestones
"""
import secrets
from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from ourlittleworld.application.errors import ValidationError

# No 0/O/1/I: codes are read aloud and typed by hand
INVITE_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
MAX_MEMBERS = 2

ROMANTIC_NAMES = [
    "LoveHaven", "BlissNest", "ForeverUs", "HeartHaven",
    "OurSweetEscape", "TwoHearts", "EndlessLove", "DreamTogether",
    "SoulMates", "PerfectPair", "LoveStory", "TogetherForever",
    "OurParadise", "SweetJourney", "EternalBond", "LoveNest",
]


class CoupleValidationError(ValidationError):
    """Invalid onboarding input"""
    pass


def generate_invite_code(length: int = 8) -> str:
    return "".join(secrets.choice(INVITE_CODE_ALPHABET) for _ in range(length))


def normalize_invite_code(code: Optional[str]) -> str:
    normalized = (code or "").strip().upper()
    if not normalized:
        raise CoupleValidationError("Invite code is required")
    return normalized


def suggest_world_name(year: Optional[int] = None) -> str:
    """Random romantic name, sometimes suffixed with the year"""
    name = secrets.choice(ROMANTIC_NAMES)
    if year is not None and secrets.randbelow(2):
        return f"{name}{year}"
    return name


# ---------------------------------------------------------------------------
# Milestones
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Milestone:
    days: int
    label: str


MILESTONES: List[Milestone] = [
    Milestone(100, "100 Days"),
    Milestone(200, "200 Days"),
    Milestone(300, "300 Days"),
    Milestone(365, "1 Year"),
    Milestone(500, "500 Days"),
    Milestone(730, "2 Years"),
]


def days_together(start_date: Optional[date], today: date) -> int:
    """Day 1 is the start date itself; 0 when no start date is known"""
    if start_date is None:
        return 0
    return abs((today - start_date).days) + 1


def next_milestone(days: int) -> Milestone:
    for m in MILESTONES:
        if m.days > days:
            return m
    return MILESTONES[-1]


def previous_milestone(days: int) -> Optional[Milestone]:
    for m in reversed(MILESTONES):
        if m.days <= days:
            return m
    return None


def milestone_progress(days: int) -> float:
    """Percent of the way from the previous milestone (or day 0) to the next one"""
    prev = previous_milestone(days)
    nxt = next_milestone(days)
    base = prev.days if prev else 0
    span = nxt.days - base
    if span <= 0:
        return 100.0
    return max(0.0, min(100.0, (days - base) / span * 100))
