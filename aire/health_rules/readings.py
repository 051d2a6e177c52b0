# File: aire/health_rules/readings.py

"""
Pollutant identifiers and the value types carrying raw concentrations.

Concentrations are in µg/m³. A concentration of None (or NaN coming out of a
pandas frame) means "not measured". SO2 is carried through but never scored.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import pandas as pd

from aire.exceptions import InvalidInputError

log = logging.getLogger(__name__)

PM25 = "PM2.5"
PM10 = "PM10"
NO2 = "NO2"
O3 = "O3"
CO = "CO"
SO2 = "SO2"

ALL_POLLUTANTS = (PM25, PM10, NO2, O3, CO, SO2)

# Fixed evaluation order; dominant-pollutant ties go to the earliest entry.
SCORED_POLLUTANTS = (PM25, PM10, NO2, O3, CO)

_ALIASES = {
    "pm2.5": PM25, "pm25": PM25, "pm2_5": PM25,
    "pm10": PM10,
    "no2": NO2, "no₂": NO2,
    "o3": O3, "o₃": O3,
    "co": CO,
    "so2": SO2, "so₂": SO2,
}


def normalize_pollutant(name):
    """Maps a pollutant name or alias to its canonical identifier.

    Accepts 'PM2.5', 'pm25', 'pm2_5', 'NO₂', 'o3' and so on.

    Returns:
        str | None: The canonical name, or None if the name is not recognised.
    """
    if not isinstance(name, str):
        return None
    return _ALIASES.get(name.strip().lower())


def is_missing(value):
    """True for None and NaN; a concentration that was not measured."""
    return value is None or bool(pd.isna(value))


@dataclass(frozen=True)
class PollutantReading:
    """
    A single pollutant concentration.

    Attributes:
        pollutant: Canonical pollutant name (aliases are normalized).
        concentration: µg/m³, must be >= 0. None means "not measured".
    """

    pollutant: str
    concentration: Optional[float] = None

    def __post_init__(self):
        canonical = normalize_pollutant(self.pollutant)
        if canonical is None:
            log.error(f"Unknown pollutant in reading: {self.pollutant!r}")
            raise InvalidInputError(f"Unknown pollutant: {self.pollutant!r}", field="pollutant")
        object.__setattr__(self, "pollutant", canonical)

        if is_missing(self.concentration):
            object.__setattr__(self, "concentration", None)
            return
        if isinstance(self.concentration, bool):
            log.error(f"Boolean concentration for {canonical}: {self.concentration!r}")
            raise InvalidInputError(
                f"Concentration for {canonical} is not numeric: {self.concentration!r}", field="concentration")
        try:
            value = float(self.concentration)
        except (TypeError, ValueError) as e:
            log.error(f"Non-numeric concentration for {canonical}: {self.concentration!r}")
            raise InvalidInputError(
                f"Concentration for {canonical} is not numeric: {self.concentration!r}",
                field="concentration") from e
        if not math.isfinite(value):
            log.error(f"Non-finite concentration for {canonical}: {value}")
            raise InvalidInputError(
                f"Concentration for {canonical} must be finite, got {value}", field="concentration")
        if value < 0:
            log.error(f"Negative concentration for {canonical}: {value}")
            raise InvalidInputError(
                f"Concentration for {canonical} must be >= 0, got {value}", field="concentration")
        object.__setattr__(self, "concentration", value)

    @property
    def measured(self) -> bool:
        return self.concentration is not None


@dataclass(frozen=True)
class MeasurementRecord:
    """
    One sample from a monitoring station, as supplied by the persistence layer.

    Only the pollutant fields are used for scoring; station fields are carried
    so alert messages can name the location.
    """

    station_id: Optional[int] = None
    station_name: Optional[str] = None
    measured_at: Optional[datetime] = None
    pm25: Optional[float] = None
    pm10: Optional[float] = None
    no2: Optional[float] = None
    o3: Optional[float] = None
    co: Optional[float] = None
    so2: Optional[float] = None

    def readings(self) -> tuple:
        """Returns one validated PollutantReading per pollutant, SO2 included."""
        return (
            PollutantReading(PM25, self.pm25),
            PollutantReading(PM10, self.pm10),
            PollutantReading(NO2, self.no2),
            PollutantReading(O3, self.o3),
            PollutantReading(CO, self.co),
            PollutantReading(SO2, self.so2),
        )

    def concentrations(self) -> dict:
        """Canonical pollutant name -> concentration (None when not measured)."""
        return {reading.pollutant: reading.concentration for reading in self.readings()}
