# File: aire/alerts/rules.py

"""
Decides whether a measured pollutant value warrants an alert for a user.

The engine is stateless. Duplicate suppression relies on a lookup callable
supplied by the caller:

    lookup(user_id, alert_type, pollutant, since) -> list[AlertRecord]

which must return the alerts of that user, type and pollutant created at or
after `since`. If two evaluations for the same key run concurrently, both
may miss each other's alert; suppression is best effort, not at-most-once.
"""

import logging
from datetime import datetime, timedelta

from aire.config_loader import get_setting
from aire.exceptions import InvalidInputError
from aire.alerts.models import AlertRecord, AlertType, Severity, color_for_severity
from aire.health_rules.readings import is_missing, normalize_pollutant

log = logging.getLogger(__name__)

DEFAULT_DEDUP_WINDOW = timedelta(hours=4)

# (minimum ratio, severity), checked from the top down.
SEVERITY_RATIOS = (
    (2.0, Severity.CRITICA),
    (1.5, Severity.ALTA),
    (1.1, Severity.MEDIA),
)


def dedup_window():
    """The configured suppression window (alerts.dedup_window_hours), 4 hours by default."""
    hours = get_setting("alerts", "dedup_window_hours")
    if hours is None:
        return DEFAULT_DEDUP_WINDOW
    try:
        return timedelta(hours=float(hours))
    except (TypeError, ValueError):
        log.warning(f"Invalid alerts.dedup_window_hours {hours!r}; using {DEFAULT_DEDUP_WINDOW}.")
        return DEFAULT_DEDUP_WINDOW


def determine_severity(measured_value, threshold):
    """
    Maps the ratio measured_value / threshold to a Severity.

    ratio >= 2.0 is CRITICA, >= 1.5 ALTA, >= 1.1 MEDIA, anything lower BAJA.
    When either value is missing the severity is MEDIA.

    Raises:
        InvalidInputError: If threshold is not strictly positive.
    """
    if is_missing(measured_value) or is_missing(threshold):
        return Severity.MEDIA
    if threshold <= 0:
        log.error(f"Cannot grade severity against non-positive threshold {threshold}.")
        raise InvalidInputError(f"Threshold must be > 0, got {threshold}", field="threshold")

    ratio = measured_value / threshold
    for minimum, severity in SEVERITY_RATIOS:
        if ratio >= minimum:
            return severity
    return Severity.BAJA


def build_alert_message(pollutant, station_name, measured_value, threshold):
    """Returns (title, message) for an air-quality alert."""
    location = station_name or get_setting("alerts", "default_location_name", default="la estación")
    title = f"Alerta de {pollutant}"
    message = (f"El nivel de {pollutant} en {location} ha alcanzado {measured_value:.1f} μg/m³, "
               f"superando su umbral configurado de {threshold:.1f} μg/m³")
    return title, message


def _validate(user_id, pollutant, measured_value, threshold):
    if user_id is None:
        log.error("Alert evaluation requested without a user id.")
        raise InvalidInputError("user_id is required", field="user_id")
    canonical = normalize_pollutant(pollutant)
    if canonical is None:
        log.error(f"Alert evaluation requested for unknown pollutant {pollutant!r}.")
        raise InvalidInputError(f"Unknown pollutant: {pollutant!r}", field="pollutant")
    if is_missing(threshold) or threshold <= 0:
        log.error(f"Alert evaluation for user {user_id}/{canonical} with invalid threshold {threshold!r}.")
        raise InvalidInputError(f"Threshold must be > 0, got {threshold!r}", field="threshold")
    if not is_missing(measured_value) and measured_value < 0:
        log.error(f"Alert evaluation for user {user_id}/{canonical} with negative value {measured_value}.")
        raise InvalidInputError(f"Measured value must be >= 0, got {measured_value}", field="measured_value")
    return canonical


def evaluate_alert(user_id, pollutant, measured_value, threshold, lookup,
                   station_id=None, station_name=None,
                   alert_type=AlertType.CALIDAD_AIRE, now=None, window=None):
    """
    Evaluates one measured value against a user's threshold.

    Args:
        user_id: Opaque user reference.
        pollutant (str): Pollutant name or alias.
        measured_value (float | None): Concentration in µg/m³. None means
            nothing was measured, which is never a breach.
        threshold (float): The user's limit; must be > 0.
        lookup (callable): Recent-alerts lookup, see the module docstring.
        station_id: Optional station reference stored on the alert.
        station_name (str | None): Location named in the message.
        alert_type (AlertType): Classification of the alert.
        now (datetime | None): Evaluation time; defaults to datetime.now().
        window (timedelta | None): Dedup window; defaults to dedup_window().

    Returns:
        AlertRecord | None:
            - None if the value does not exceed the threshold;
            - the most recent existing alert for (user, type, pollutant)
              inside the window, unchanged;
            - otherwise a new, unpersisted AlertRecord (alert_id is None).

    Raises:
        InvalidInputError: Missing user id, unknown pollutant, threshold <= 0
            or a negative measured value.
    """
    canonical = _validate(user_id, pollutant, measured_value, threshold)
    if is_missing(measured_value) or measured_value <= threshold:
        log.debug(f"No alert due for user {user_id}/{canonical}: {measured_value} <= {threshold}.")
        return None

    severity = determine_severity(measured_value, threshold)
    now = now or datetime.now()
    since = now - (window if window is not None else dedup_window())

    existing = lookup(user_id, alert_type, canonical, since)
    if existing:
        latest = max(existing, key=lambda alert: alert.created_at)
        log.debug(f"Similar alert {latest.alert_id} exists for user {user_id}/{canonical} "
                  f"since {since:%Y-%m-%d %H:%M}; skipping duplicate.")
        return latest

    title, message = build_alert_message(canonical, station_name, measured_value, threshold)
    alert = AlertRecord(
        user_id=user_id,
        alert_type=alert_type,
        severity=severity,
        title=title,
        message=message,
        pollutant=canonical,
        measured_value=measured_value,
        threshold=threshold,
        station_id=station_id,
        station_name=station_name,
        color=color_for_severity(severity),
        created_at=now,
    )
    log.info(f"New {severity.name} alert for user {user_id}: {title} ({measured_value} > {threshold}).")
    return alert


def evaluate_thresholds(measurement, thresholds, lookup, now=None, window=None):
    """
    Checks one station measurement against a set of user thresholds.

    Station-bound thresholds only apply to measurements from their station.
    At most one alert is returned per (user, pollutant) even when several
    thresholds for that pair apply.

    Args:
        measurement (MeasurementRecord): The sample to check.
        thresholds (iterable[AlertThreshold]): Configured limits.
        lookup (callable): Recent-alerts lookup.

    Returns:
        list[AlertRecord]: New and suppressed-duplicate alerts, in threshold order.
    """
    concentrations = measurement.concentrations()
    now = now or datetime.now()
    alerts, seen = [], set()
    for threshold in thresholds:
        if not threshold.applies_to(measurement.station_id):
            continue
        key = (threshold.user_id, threshold.pollutant)
        if key in seen:
            continue
        alert = evaluate_alert(
            threshold.user_id, threshold.pollutant, concentrations.get(threshold.pollutant),
            threshold.limit, lookup,
            station_id=measurement.station_id, station_name=measurement.station_name,
            now=now, window=window,
        )
        if alert is not None:
            seen.add(key)
            alerts.append(alert)
    return alerts


def raise_alert(store, user_id, pollutant, measured_value, threshold, **kwargs):
    """
    Evaluates a breach and persists the alert through `store` if it is new.

    `store` needs find_similar (used as the lookup) and save. Keyword
    arguments are passed on to evaluate_alert.

    Returns:
        AlertRecord | None: The persisted new alert, the existing duplicate,
        or None when there is no breach.
    """
    alert = evaluate_alert(user_id, pollutant, measured_value, threshold, store.find_similar, **kwargs)
    if alert is not None and not alert.is_persisted:
        alert = store.save(alert)
    return alert
