# File: aire/health_rules/interpreter.py

"""
Interprets potential health risks pollutant by pollutant.

The overall AQI only reports the worst pollutant. This module scores every
measured pollutant on its own and produces a human-readable warning for each
one whose sub-index is above the Moderate band.
"""

import logging

from aire.exceptions import InvalidInputError
from aire.health_rules.calculator import calculate_sub_indices
from aire.health_rules.info import get_aqi_info

log = logging.getLogger(__name__)

# Sub-indices above this value trigger a warning (the top of "Moderate").
RISK_SUB_INDEX_THRESHOLD = 100


def interpret_pollutant_risks(readings):
    """Identifies pollutants whose individual sub-index signals a health risk.

    Args:
        readings: Anything calculate_aqi accepts (mapping, pandas Series,
                  PollutantReading iterable, MeasurementRecord). None or an
                  empty mapping yields no risks.

    Returns:
        list[str]: One "{POLLUTANT} ({level}): {recommendation}" string per
                   risky pollutant, worst first. Empty when the air is clean
                   or the input cannot be interpreted.
    """
    if readings is None or (hasattr(readings, "__len__") and len(readings) == 0):
        log.warning("Invalid or empty readings received for interpretation.")
        return []
    try:
        sub_indices = calculate_sub_indices(readings)
    except (InvalidInputError, AttributeError, TypeError) as e:
        log.warning(f"Could not interpret readings {readings!r}: {e}")
        return []

    risky = [(p, idx) for p, idx in sub_indices.items() if idx > RISK_SUB_INDEX_THRESHOLD]
    # Stable sort keeps the evaluation order for equal sub-indices.
    risky.sort(key=lambda item: item[1], reverse=True)

    triggered_risks = []
    for pollutant, sub_index in risky:
        band = get_aqi_info(sub_index)
        triggered_risks.append(f"{pollutant} ({band['level']}): {band['recommendation']}")
        log.info(f"Risk for {pollutant}: sub-index {sub_index} ({band['level']}).")

    if not triggered_risks:
        log.info("No pollutant exceeds the Moderate band.")
    return triggered_risks
