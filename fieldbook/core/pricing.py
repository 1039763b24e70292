"""
Pricing calculator.

Night pricing applies from the global night-start time until midnight
(no wraparound), and only for fields that have a night price.
Football sessions are a flat rate taken at the start time.  Racket
sports are billed per hour, each hour at its own start time's rate,
plus a pro-rated fractional remainder.
"""

from __future__ import annotations

from fieldbook.core.clock import PricingConfig
from fieldbook.core.slots import is_football
from fieldbook.core.timeofday import to_minutes
from fieldbook.errors import InvalidDuration
from fieldbook.models import Terrain


def is_night(minutes: int, config: PricingConfig) -> bool:
    return minutes >= to_minutes(config.night_start)


def rate_at(field: Terrain, minutes: int, config: PricingConfig) -> float:
    if field.night_price is not None and is_night(minutes, config):
        return field.night_price
    return field.day_price


def compute_price(
    field: Terrain,
    start: str,
    duration: float,
    config: PricingConfig,
) -> float:
    if duration <= 0:
        raise InvalidDuration("Duration must be positive", details={"duration": duration})

    begin = to_minutes(start)
    if is_football(field):
        return round(rate_at(field, begin, config), 2)

    whole_hours = int(duration)
    fraction = duration - whole_hours

    total = sum(rate_at(field, begin + 60 * hour, config) for hour in range(whole_hours))
    if fraction > 0:
        total += fraction * rate_at(field, begin + 60 * whole_hours, config)
    return round(total, 2)
