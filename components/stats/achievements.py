"""
Threshold-based achievement badges.

Each badge is a data record with an evaluation function over a small metrics
context, evaluated in list order.
"""

from dataclasses import dataclass
from typing import Callable, List, Tuple

from .models import Achievement

EXPLORER_BIKES = 50
VETERAN_MAX_ID = 1000
LOYAL_REPEATED_BIKES = 10
MARATHON_MINUTES = 45
NIGHT_OWL_HOURS = range(0, 5)


@dataclass(frozen=True)
class AchievementContext:
    unique_bikes: int
    repeated_bikes: int
    min_bike_id: int
    new_fleet_trips: int
    longest_trip_minutes: int
    has_trips: bool
    night_trips: int


@dataclass(frozen=True)
class AchievementRule:
    id: str
    icon: str
    title: str
    description: str
    evaluate: Callable[[AchievementContext], Tuple[bool, str]]


def _explorer(ctx: AchievementContext) -> Tuple[bool, str]:
    return ctx.unique_bikes >= EXPLORER_BIKES, f"{min(ctx.unique_bikes, EXPLORER_BIKES)}/{EXPLORER_BIKES}"


def _veteran(ctx: AchievementContext) -> Tuple[bool, str]:
    found = 0 < ctx.min_bike_id < VETERAN_MAX_ID
    return found, 'Found' if found else 'Pending'


def _futurist(ctx: AchievementContext) -> Tuple[bool, str]:
    unlocked = ctx.new_fleet_trips > 0
    return unlocked, 'Unlocked' if unlocked else 'Pending'


def _loyal(ctx: AchievementContext) -> Tuple[bool, str]:
    return (ctx.repeated_bikes > LOYAL_REPEATED_BIKES,
            f"{min(ctx.repeated_bikes, LOYAL_REPEATED_BIKES)}/{LOYAL_REPEATED_BIKES}")


def _marathon(ctx: AchievementContext) -> Tuple[bool, str]:
    if not ctx.has_trips:
        return False, '0m'
    return (ctx.longest_trip_minutes >= MARATHON_MINUTES,
            f"{ctx.longest_trip_minutes}m / {MARATHON_MINUTES}m")


def _night_owl(ctx: AchievementContext) -> Tuple[bool, str]:
    unlocked = ctx.night_trips > 0
    return unlocked, 'Yes' if unlocked else 'Never'


ACHIEVEMENT_RULES: List[AchievementRule] = [
    AchievementRule('explorer', '🌍', 'Explorer', f'Ride {EXPLORER_BIKES} different bikes', _explorer),
    AchievementRule('veteran', '🦖', 'Veteran', f'Find a bike with id below {VETERAN_MAX_ID}', _veteran),
    AchievementRule('futurist', '⚡', 'Futurist', 'Try the new electric fleet (ids 8000+)', _futurist),
    AchievementRule('loyal', '🐕', 'Loyal', f'Ride more than {LOYAL_REPEATED_BIKES} bikes more than once', _loyal),
    AchievementRule('marathon', '🏃', 'Marathon', f'One trip of {MARATHON_MINUTES} minutes or more', _marathon),
    AchievementRule('nightowl', '🦉', 'Night Owl', 'Ride between 00:00 and 04:59', _night_owl),
]


def evaluate_achievements(ctx: AchievementContext) -> List[Achievement]:
    """Evaluate every rule against the metrics context, in rule order."""
    achievements = []
    for rule in ACHIEVEMENT_RULES:
        unlocked, progress = rule.evaluate(ctx)
        achievements.append(Achievement(
            id=rule.id,
            icon=rule.icon,
            title=rule.title,
            description=rule.description,
            unlocked=unlocked,
            progress=progress,
        ))
    return achievements
