# File: aire/health_rules/calculator.py

"""
Calculates the US EPA Air Quality Index from pollutant concentrations.

Each scored pollutant (PM2.5, PM10, NO2, O3, CO) is converted to the unit
its breakpoint table is written in, interpolated linearly inside its
breakpoint segment to a sub-index, and the overall AQI is the highest
sub-index. The pollutant that produced it is reported as dominant.

All functions here are pure and safe to call from several threads.
"""

import logging
import math
import numbers
from collections import namedtuple
from collections.abc import Mapping
from dataclasses import dataclass, field

from aire.exceptions import InvalidInputError
from aire.health_rules.info import AQICategory, get_aqi_info, round_half_up
from aire.health_rules.readings import (
    CO, NO2, O3, PM10, PM25, SCORED_POLLUTANTS,
    MeasurementRecord, PollutantReading, is_missing, normalize_pollutant,
)

log = logging.getLogger(__name__)


Breakpoint = namedtuple("Breakpoint", ["conc_low", "conc_high", "index_low", "index_high"])

# --- Breakpoint Tables (US EPA) ---
# PM in µg/m³, NO2 and O3 in ppb, CO in ppm. A segment owns the concentrations
# in (previous conc_high, conc_high]; past the last segment its formula is
# extrapolated.
BREAKPOINTS = {
    PM25: (
        Breakpoint(0.0, 12.0, 0, 50),
        Breakpoint(12.1, 35.4, 51, 100),
        Breakpoint(35.5, 55.4, 101, 150),
        Breakpoint(55.5, 150.4, 151, 200),
        Breakpoint(150.5, 250.4, 201, 300),
        Breakpoint(250.5, 500.4, 301, 500),
    ),
    PM10: (
        Breakpoint(0, 54, 0, 50),
        Breakpoint(55, 154, 51, 100),
        Breakpoint(155, 254, 101, 150),
        Breakpoint(255, 354, 151, 200),
        Breakpoint(355, 424, 201, 300),
        Breakpoint(425, 604, 301, 500),
    ),
    NO2: (
        Breakpoint(0, 53, 0, 50),
        Breakpoint(54, 100, 51, 100),
        Breakpoint(101, 360, 101, 150),
        Breakpoint(361, 649, 151, 200),
        Breakpoint(650, 1249, 201, 300),
        Breakpoint(1250, 2049, 301, 500),
    ),
    O3: (
        Breakpoint(0, 54, 0, 50),
        Breakpoint(55, 70, 51, 100),
        Breakpoint(71, 85, 101, 150),
        Breakpoint(86, 105, 151, 200),
        Breakpoint(106, 200, 201, 300),
        Breakpoint(201, 504, 301, 500),
    ),
    CO: (
        Breakpoint(0.0, 4.4, 0, 50),
        Breakpoint(4.5, 9.4, 51, 100),
        Breakpoint(9.5, 12.4, 101, 150),
        Breakpoint(12.5, 15.4, 151, 200),
        Breakpoint(15.5, 30.4, 201, 300),
        Breakpoint(30.5, 50.4, 301, 500),
    ),
}

# µg/m³ -> table unit. Fixed approximations at 25 °C.
UNIT_CONVERSIONS = {
    PM25: 1.0,
    PM10: 1.0,
    NO2: 0.532,     # ppb
    O3: 0.5,        # ppb
    CO: 0.000873,   # ppm
}


@dataclass(frozen=True)
class AQIResult:
    """
    Outcome of an AQI computation. Always derived, never persisted on its own.

    Attributes:
        index: Overall AQI, the highest sub-index.
        dominant_pollutant: Pollutant whose sub-index equals `index`.
        category: AQICategory band of `index`.
        level: English label of the band.
        color: Hex display color of the band.
        recommendation: Health guidance for the band.
        sub_indices: Sub-index per measured pollutant, in evaluation order.
    """

    index: int
    dominant_pollutant: str
    category: AQICategory
    level: str
    color: str
    recommendation: str
    sub_indices: dict = field(default_factory=dict)

    def to_dict(self):
        return {
            "aqi": self.index,
            "dominant_pollutant": self.dominant_pollutant,
            "category": self.category.value,
            "level": self.level,
            "color": self.color,
            "recommendation": self.recommendation,
            "sub_indices": dict(self.sub_indices),
        }


def _to_float(value, pollutant):
    if isinstance(value, bool) or not isinstance(value, (numbers.Real, str)):
        log.error(f"Non-numeric concentration for {pollutant}: {value!r}")
        raise InvalidInputError(f"Concentration for {pollutant} is not numeric: {value!r}", field=pollutant)
    try:
        number = float(value)
    except ValueError as e:
        log.error(f"Non-numeric concentration for {pollutant}: {value!r}")
        raise InvalidInputError(f"Concentration for {pollutant} is not numeric: {value!r}", field=pollutant) from e
    if not math.isfinite(number):
        log.error(f"Non-finite concentration for {pollutant}: {value!r}")
        raise InvalidInputError(f"Concentration for {pollutant} must be finite, got {value!r}", field=pollutant)
    return number


def convert_concentration(value, pollutant):
    """Converts a µg/m³ concentration into the unit of the pollutant's breakpoint table."""
    canonical = normalize_pollutant(pollutant)
    if canonical not in UNIT_CONVERSIONS:
        log.error(f"Cannot convert concentration for unscored pollutant {pollutant!r}")
        raise InvalidInputError(f"Pollutant is not scored: {pollutant!r}", field="pollutant")
    return value * UNIT_CONVERSIONS[canonical]


def interpolate_sub_index(converted, pollutant):
    """
    Applies the breakpoint formula to a concentration already in table units.

    The segment is the first whose conc_high is >= the concentration. Values
    falling in the gap below that segment's conc_low score as conc_low, so the
    result never drops across a boundary. Above the last segment the last
    formula is extrapolated without a cap.
    """
    table = BREAKPOINTS[normalize_pollutant(pollutant)]
    segment = next((bp for bp in table if converted <= bp.conc_high), table[-1])
    conc = max(converted, segment.conc_low)
    slope = (segment.index_high - segment.index_low) / (segment.conc_high - segment.conc_low)
    return round_half_up(slope * (conc - segment.conc_low) + segment.index_low)


def calculate_sub_index(value, pollutant):
    """
    Calculates the AQI sub-index for one pollutant.

    Args:
        value (float | None): Concentration in µg/m³. None/NaN means not measured.
        pollutant (str): Pollutant name or alias ('PM2.5', 'pm25', 'no2', ...).

    Returns:
        int | None: The sub-index, or None if the value is missing or the
                    pollutant is unknown or not scored (SO2).

    Raises:
        InvalidInputError: If the value is not numeric or not finite.

    Negative concentrations are a caller error; they are clamped to 0 here
    (with a warning) rather than extrapolated below the first segment.
    """
    canonical = normalize_pollutant(pollutant)
    if canonical not in BREAKPOINTS:
        log.debug(f"Pollutant '{pollutant}' is not scored; no sub-index.")
        return None
    if is_missing(value):
        return None

    conc = _to_float(value, canonical)
    if conc < 0:
        log.warning(f"Negative concentration {conc} for {canonical}; clamping to 0.")
        conc = 0.0

    sub_index = interpolate_sub_index(convert_concentration(conc, canonical), canonical)
    log.debug(f"{canonical}: {conc} µg/m³ -> sub-index {sub_index}")
    return sub_index


def _collect_concentrations(readings):
    """Normalizes the accepted input shapes into {canonical pollutant: value}."""
    if readings is None:
        return {}
    if isinstance(readings, MeasurementRecord):
        return readings.concentrations()
    if isinstance(readings, PollutantReading):
        readings = [readings]

    concentrations = {}
    if isinstance(readings, Mapping) or hasattr(readings, "items"):
        pairs = readings.items()
    else:
        pairs = ((r.pollutant, r.concentration) for r in readings)

    for name, value in pairs:
        canonical = normalize_pollutant(name)
        if canonical is None:
            log.debug(f"Ignoring unknown pollutant column: {name!r}")
            continue
        if is_missing(concentrations.get(canonical)):
            concentrations[canonical] = value
    return concentrations


def calculate_sub_indices(readings):
    """
    Returns {pollutant: sub-index} for every measured, scored pollutant.

    Keys follow the fixed evaluation order PM2.5, PM10, NO2, O3, CO whatever
    the order of the input.
    """
    concentrations = _collect_concentrations(readings)
    sub_indices = {}
    for pollutant in SCORED_POLLUTANTS:
        sub_index = calculate_sub_index(concentrations.get(pollutant), pollutant)
        if sub_index is not None:
            sub_indices[pollutant] = sub_index
    return sub_indices


def calculate_aqi(readings):
    """
    Computes the overall AQI, its dominant pollutant and its category.

    Args:
        readings: One of
            - a mapping or pandas Series of pollutant name -> concentration (µg/m³),
            - an iterable of PollutantReading,
            - a MeasurementRecord.
            Missing pollutants, None and NaN are "not measured"; unknown
            names are ignored.

    Returns:
        AQIResult | None: None when no scored pollutant was measured. An
        index of 0 is only ever returned for real measurements.
    """
    sub_indices = calculate_sub_indices(readings)
    if not sub_indices:
        log.info("No pollutant concentrations supplied; AQI cannot be computed.")
        return None

    dominant, index = None, None
    for pollutant, sub_index in sub_indices.items():
        if index is None or sub_index > index:
            dominant, index = pollutant, sub_index

    band = get_aqi_info(index)
    result = AQIResult(
        index=index,
        dominant_pollutant=dominant,
        category=band["category"],
        level=band["level"],
        color=band["color"],
        recommendation=band["recommendation"],
        sub_indices=sub_indices,
    )
    log.info(f"AQI computed: {index} ({band['category'].value}), dominant pollutant {dominant}.")
    return result


def calculate_aqi_from_pollutants(data_row):
    """Returns only the overall AQI integer for a row of concentrations, or None."""
    result = calculate_aqi(data_row)
    return result.index if result else None
