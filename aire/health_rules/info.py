# File: aire/health_rules/info.py

"""
Defines the US EPA Air Quality Index (AQI) scale and provides related utilities.

This module contains the six EPA categories, their display colors and the
health recommendation shown for each. It provides lookup functions to
classify a numerical AQI value into its category.
"""

import enum
import logging
import math
import numbers

import pandas as pd  # Used for the robust pd.isna check


log = logging.getLogger(__name__)


# --- AQI Definition ---
# A general-purpose description of the Air Quality Index for display.
AQI_DEFINITION = """
The Air Quality Index (AQI) is a tool used by government agencies to communicate how polluted the air currently is or how polluted it is forecast to become.
It helps you understand the potential health effects associated with different levels of air quality.
"""


class AQICategory(enum.Enum):
    """The six ordered EPA bands. Values are the Spanish display labels."""
    GOOD = "Buena"
    MODERATE = "Moderada"
    UNHEALTHY_FOR_SENSITIVE = "Insalubre para grupos sensibles"
    UNHEALTHY = "Insalubre"
    VERY_UNHEALTHY = "Muy insalubre"
    HAZARDOUS = "Peligrosa"


# --- AQI Scale and Health Recommendations (US EPA) ---
# Ordered, contiguous integer bands. The last band has no upper bound.
AQI_SCALE = [
    {"low": 0,   "high": 50,   "category": AQICategory.GOOD,
     "level": "Good", "color": "#00E400",
     "recommendation": "La calidad del aire es satisfactoria. El aire no presenta riesgo."},
    {"low": 51,  "high": 100,  "category": AQICategory.MODERATE,
     "level": "Moderate", "color": "#FFFF00",
     "recommendation": "La calidad del aire es aceptable para la mayoría. Los grupos sensibles pueden experimentar síntomas menores."},
    {"low": 101, "high": 150,  "category": AQICategory.UNHEALTHY_FOR_SENSITIVE,
     "level": "Unhealthy for Sensitive Groups", "color": "#FF7E00",
     "recommendation": "Los grupos sensibles pueden experimentar síntomas de salud. El público general no se ve afectado."},
    {"low": 151, "high": 200,  "category": AQICategory.UNHEALTHY,
     "level": "Unhealthy", "color": "#FF0000",
     "recommendation": "Todos pueden experimentar síntomas de salud. Los grupos sensibles pueden experimentar efectos más graves."},
    {"low": 201, "high": 300,  "category": AQICategory.VERY_UNHEALTHY,
     "level": "Very Unhealthy", "color": "#8F3F97",
     "recommendation": "Advertencia de salud: todos pueden experimentar efectos graves en la salud."},
    {"low": 301, "high": None, "category": AQICategory.HAZARDOUS,
     "level": "Hazardous", "color": "#7E0023",
     "recommendation": "Alerta de salud: condiciones de emergencia. Toda la población puede verse afectada."},
]


def round_half_up(value):
    """Rounds .5 away from zero for positive values (Math.round semantics, not banker's)."""
    return int(math.floor(value + 0.5))


def _is_valid_aqi(aqi_value):
    if isinstance(aqi_value, bool) or not isinstance(aqi_value, numbers.Real):
        return False
    return not pd.isna(aqi_value) and math.isfinite(aqi_value) and aqi_value >= 0


def get_aqi_info(aqi_value):
    """
    Finds the EPA AQI category details for a given numerical AQI value.

    Floats are rounded half-up before the lookup, so 100.4 is Moderate and
    100.5 falls into the next band.

    Args:
        aqi_value (int | float | None): The numerical AQI value to classify.

    Returns:
        dict | None: The matching AQI_SCALE entry ('low', 'high', 'category',
                     'level', 'color', 'recommendation'). Returns None for
                     invalid inputs (negative, non-numeric, NaN, infinite or None).
    """
    if not _is_valid_aqi(aqi_value):
        log.warning(f"Invalid AQI value received: {aqi_value!r}. Returning None.")
        return None

    index = round_half_up(aqi_value)
    for band in AQI_SCALE:
        if band["high"] is None or index <= band["high"]:
            return band
    # Unreachable while the last band is open-ended.
    return AQI_SCALE[-1]


def get_category(aqi_value):
    """Returns the AQICategory for an AQI value, or None for invalid input."""
    band = get_aqi_info(aqi_value)
    return band["category"] if band else None
