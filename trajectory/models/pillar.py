"""Wellness pillar enumeration"""
from enum import Enum


class Pillar(str, Enum):
    """The eight dimensions of wellness a habit can belong to"""
    PHYSICAL = "physical"
    MENTAL = "mental"
    FISCAL = "fiscal"
    SOCIAL = "social"
    SPIRITUAL = "spiritual"
    INTELLECTUAL = "intellectual"
    OCCUPATIONAL = "occupational"
    ENVIRONMENTAL = "environmental"


# Fixed reporting order for scores, multipliers and context strings
ALL_PILLARS: tuple[Pillar, ...] = tuple(Pillar)

# The app launched with three pillars; the "balanced" achievement still checks only these
ORIGINAL_PILLARS: tuple[Pillar, ...] = (Pillar.PHYSICAL, Pillar.MENTAL, Pillar.FISCAL)
