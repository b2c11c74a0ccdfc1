"""Per-account game state and the rules that move it.

Everything here is pure: each transition takes the current ``GameState`` and
the current time and either returns the next state or raises. Nothing is
persisted until the caller has a confirmed on-chain action, so a rejected
transaction never touches stored state.
"""

import enum
import math
from dataclasses import asdict, dataclass, replace
from typing import Optional

from bonsai.constants import (
    BASE_MAINNET,
    BASE_SEPOLIA,
    HEALTH_BY_STREAK,
    MAX_MISSED_STREAK,
    SECONDS_PER_DAY,
    SECONDS_PER_HOUR,
    WATER_COOLDOWN_HOURS,
    WATER_DISPLAY_PERIOD_HOURS,
    WITHER_STREAK,
    WITHERED_HEALTH,
)
from bonsai.encoding import is_likely_address
from bonsai.errors import CooldownError, PreconditionError, ValidationError
from bonsai.rng import hue_from_identifier
from bonsai.signals import clamp


class Stage(enum.Enum):
    UNPLANTED = "unplanted"
    ALIVE = "alive"
    WITHERED = "withered"


@dataclass(frozen=True)
class GameState:
    planted_at: Optional[float] = None
    growth: int = 0
    last_watered_at: Optional[float] = None
    missed_streak: int = 0
    revived_at: Optional[float] = None
    last_grafted_at: Optional[float] = None

    @property
    def planted(self):
        return self.planted_at is not None

    @property
    def withered(self):
        return is_withered(self.missed_streak)

    @property
    def health(self):
        return health(self.missed_streak)

    @property
    def stage(self):
        if not self.planted:
            return Stage.UNPLANTED
        return Stage.WITHERED if self.withered else Stage.ALIVE

    def to_dict(self):
        return asdict(self)

    @classmethod
    def from_dict(cls, data):
        """Build a state from an untrusted record, repairing what it can.

        Fields of the wrong type fall back to their defaults; the streak is
        clamped and a planted tree always has at least one growth stage.
        """
        if not isinstance(data, dict):
            return cls()

        def number(key):
            value = data.get(key)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                return None
            if not math.isfinite(value):
                return None
            return value

        growth = number("growth")
        missed = number("missed_streak")
        planted_at = number("planted_at")
        growth = max(0, int(growth)) if growth is not None else 0
        if planted_at is not None:
            growth = max(1, growth)
        return cls(
            planted_at=planted_at,
            growth=growth,
            last_watered_at=number("last_watered_at"),
            missed_streak=int(clamp(int(missed), 0, MAX_MISSED_STREAK)) if missed is not None else 0,
            revived_at=number("revived_at"),
            last_grafted_at=number("last_grafted_at"),
        )


def hours_since(ts, now):
    if ts is None:
        return math.inf
    return (now - ts) / SECONDS_PER_HOUR


def days_since(ts, now):
    if ts is None:
        return math.inf
    return (now - ts) / SECONDS_PER_DAY


def compute_missed_streak(state, now):
    if state.last_watered_at is None:
        return 0
    return int(clamp(math.floor(days_since(state.last_watered_at, now)), 0, MAX_MISSED_STREAK))


def refresh(state, now):
    """Recompute the decay streak from the last watering."""
    return replace(state, missed_streak=compute_missed_streak(state, now))


def health(missed_streak):
    missed = missed_streak or 0
    if missed <= 0:
        return HEALTH_BY_STREAK[0]
    if missed < len(HEALTH_BY_STREAK):
        return HEALTH_BY_STREAK[missed]
    return WITHERED_HEALTH


def is_withered(missed_streak):
    return (missed_streak or 0) >= WITHER_STREAK


def can_water(state, now):
    return hours_since(state.last_watered_at, now) >= WATER_COOLDOWN_HOURS


def water_wait_hours(state, now):
    return max(0.0, WATER_DISPLAY_PERIOD_HOURS - hours_since(state.last_watered_at, now))


# --- Transitions ---

def plant(state, now):
    if state.planted:
        raise PreconditionError("Already planted.")
    return GameState(planted_at=now, growth=1, last_watered_at=now, missed_streak=0)


def water(state, now):
    if not state.planted:
        raise PreconditionError("Plant your seed first.")
    if state.withered:
        raise PreconditionError("Your bonsai is withered. Revive it first.")
    if not can_water(state, now):
        wait = water_wait_hours(state, now)
        raise CooldownError("Water is ready in ~%.1fh." % wait, wait)
    return replace(state, growth=(state.growth or 1) + 1, last_watered_at=now, missed_streak=0)


def revive(state, now):
    if not state.planted:
        raise PreconditionError("Plant your seed first.")
    if not state.withered:
        raise PreconditionError("Your bonsai isn't withered yet.")
    return replace(state, missed_streak=0, revived_at=now, last_watered_at=now)


def graft(state, friend_address, now):
    """Returns ``(next_state, hue)`` for grafting a friend's colour."""
    if not state.planted:
        raise PreconditionError("Plant your seed first.")
    addr = (friend_address or "").strip()
    if not is_likely_address(addr):
        raise ValidationError("Enter a valid friend's address (0x...).")
    return replace(state, last_grafted_at=now), hue_from_identifier(addr)


# --- Presentation ---

def health_label(state):
    if state.withered:
        return "Withered"
    if state.health > 0.8:
        return "Vibrant"
    if state.health > 0.6:
        return "Tired"
    return "Fading"


def status_line(state, connected=True):
    if not connected:
        return "Connect your wallet to begin."
    if not state.planted:
        return "Plant a seed to generate your soul-tree."
    if state.withered:
        return "Withered. Revive within the ink."
    return "Alive. Water daily to grow."


def chain_label(chain_id):
    if not chain_id:
        return "—"
    if chain_id == BASE_MAINNET:
        return "Base"
    if chain_id == BASE_SEPOLIA:
        return "Sepolia"
    return "Other"


def short_address(addr):
    return "%s…%s" % (addr[:6], addr[-4:]) if addr else ""
