"""Race fuel calculator."""

from __future__ import annotations

import math
from dataclasses import dataclass

from ..commands.builder import command, integer, number
from ..commands.errors import CreateMessage, ParseError, Response
from ..commands.requests import ClassicRequest, SlashRequest
from ..context import Context

__all__ = ["COMMANDS", "FuelEstimate", "estimate_fuel", "fuel"]


@dataclass(frozen=True)
class FuelEstimate:
    """Result of a fuel calculation.

    Attributes:
        laps: Laps driven during the stint, rounded up
        fuel_needed: Fuel for those laps
        recommended: Fuel needed plus one lap of margin, rounded up
    """

    laps: int
    fuel_needed: float
    recommended: int


def estimate_fuel(stint_minutes: int, lap_minutes: int, lap_seconds: float, consumption: float) -> FuelEstimate:
    """Compute the fuel required for a stint.

    Args:
        stint_minutes: Length of the race or stint
        lap_minutes: Minutes part of the lap time
        lap_seconds: Seconds part of the lap time
        consumption: Fuel used per lap

    Raises:
        ValueError: for a zero lap time
    """
    lap_time = lap_minutes * 60 + lap_seconds
    if lap_time <= 0:
        msg = "lap time must be positive"
        raise ValueError(msg)
    laps = math.ceil(stint_minutes * 60 / lap_time)
    fuel_needed = laps * consumption
    return FuelEstimate(laps, fuel_needed, math.ceil(fuel_needed + consumption))


async def fuel(ctx: Context, req: ClassicRequest | SlashRequest) -> Response:  # noqa: ARG001
    """Calculate race fuel required."""
    args = req.args
    try:
        result = estimate_fuel(args.get_integer("stint"), args.get_integer("minutes"), args.get_number("seconds"), args.get_number("consumption"))
    except ValueError as e:
        raise ParseError(str(e)) from e
    return CreateMessage(
        f"Laps: **{result.laps}**\n"
        f"Fuel needed: **{result.fuel_needed:g} L**\n"
        f"Recommended: **{result.recommended} L**"
    )


COMMANDS = [
    command("fuel", "Calculate race fuel required.")
    .attach(fuel)
    .option(integer("stint", "Length of the race or stint in minutes.").required().min(1))
    .option(integer("minutes", "Lap time minutes.").required().min(0).max(30))
    .option(number("seconds", "Lap time seconds (and optionally milliseconds as decimal).").required().min(0.0).max(59.9999))
    .option(number("consumption", "Fuel consumption in litres per lap.").required().min(0.1).max(100.0))
    .dm(),
]
