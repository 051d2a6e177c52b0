# File: tests/alerts/test_rules.py

"""
Unit tests for the alert rules engine in `aire/alerts/rules.py`.

The recent-alerts lookup is replaced either by a pytest-mock Mock, to check
exactly how the engine queries it, or by the in-memory store, to check the
end-to-end suppression behaviour.
"""
from datetime import timedelta

import pytest

from aire.alerts.models import AlertRecord, AlertThreshold, AlertType, Severity
from aire.alerts.rules import (
    DEFAULT_DEDUP_WINDOW,
    build_alert_message,
    dedup_window,
    determine_severity,
    evaluate_alert,
    evaluate_thresholds,
    raise_alert,
)
from aire.exceptions import InvalidInputError
from aire.health_rules.readings import MeasurementRecord


def make_alert(created_at, alert_id, user_id=7, pollutant='PM2.5'):
    return AlertRecord(
        user_id=user_id, alert_type=AlertType.CALIDAD_AIRE, severity=Severity.MEDIA,
        title=f"Alerta de {pollutant}", message="...", pollutant=pollutant,
        created_at=created_at, alert_id=alert_id,
    )


# --- Tests for determine_severity ---

@pytest.mark.parametrize("measured, threshold, expected", [
    (90, 40, Severity.CRITICA),   # ratio 2.25
    (80, 40, Severity.CRITICA),   # ratio 2.0
    (79.9, 40, Severity.ALTA),
    (60, 40, Severity.ALTA),      # ratio 1.5
    (59, 40, Severity.MEDIA),
    (44, 40, Severity.MEDIA),     # ratio 1.1
    (42, 40, Severity.BAJA),      # ratio 1.05
    (None, 40, Severity.MEDIA),
    (50, None, Severity.MEDIA),
])
def test_determine_severity(measured, threshold, expected):
    assert determine_severity(measured, threshold) is expected


@pytest.mark.parametrize("threshold", [0, -5])
def test_determine_severity_rejects_non_positive_threshold(threshold, caplog):
    with pytest.raises(InvalidInputError):
        determine_severity(50, threshold)
    assert "non-positive threshold" in caplog.text


def test_severity_is_monotonic_in_ratio():
    ratios = [1.0 + i * 0.01 for i in range(0, 200)]
    severities = [determine_severity(ratio * 40, 40) for ratio in ratios]
    assert all(a <= b for a, b in zip(severities, severities[1:]))
    assert Severity.BAJA < Severity.MEDIA < Severity.ALTA < Severity.CRITICA


# --- Tests for evaluate_alert ---

def test_no_alert_when_value_within_threshold(mocker, now):
    lookup = mocker.Mock(return_value=[])
    assert evaluate_alert(7, 'PM2.5', 40, 40, lookup, now=now) is None
    assert evaluate_alert(7, 'PM2.5', None, 40, lookup, now=now) is None
    lookup.assert_not_called()


def test_new_alert_is_built(mocker, now):
    lookup = mocker.Mock(return_value=[])
    alert = evaluate_alert(7, 'PM2.5', 90, 40, lookup, station_id=3, station_name="Cercado", now=now)

    lookup.assert_called_once_with(7, AlertType.CALIDAD_AIRE, 'PM2.5', now - timedelta(hours=4))
    assert alert.severity is Severity.CRITICA
    assert alert.color == "#dc3545"
    assert alert.title == "Alerta de PM2.5"
    assert alert.message == ("El nivel de PM2.5 en Cercado ha alcanzado 90.0 μg/m³, "
                             "superando su umbral configurado de 40.0 μg/m³")
    assert alert.measured_value == 90
    assert alert.threshold == 40
    assert alert.station_id == 3
    assert alert.read is False
    assert alert.created_at == now
    assert alert.alert_id is None


def test_low_breach_is_baja_green(mocker, now):
    alert = evaluate_alert(7, 'PM10', 42, 40, mocker.Mock(return_value=[]), now=now)
    assert alert.severity is Severity.BAJA
    assert alert.color == "#28a745"


def test_pollutant_alias_is_normalized_for_lookup(mocker, now):
    lookup = mocker.Mock(return_value=[])
    alert = evaluate_alert(7, 'pm25', 50, 40, lookup, now=now, window=timedelta(hours=1))
    lookup.assert_called_once_with(7, AlertType.CALIDAD_AIRE, 'PM2.5', now - timedelta(hours=1))
    assert alert.pollutant == 'PM2.5'


def test_message_uses_default_location_without_station_name(mocker, now):
    alert = evaluate_alert(7, 'O3', 150.0, 100, mocker.Mock(return_value=[]), now=now)
    assert "El nivel de O3 en la estación ha alcanzado 150.0 μg/m³" in alert.message
    assert alert.severity is Severity.ALTA


def test_existing_similar_alert_is_returned(mocker, now):
    older = make_alert(now - timedelta(hours=3), alert_id=1)
    newer = make_alert(now - timedelta(hours=1), alert_id=2)
    lookup = mocker.Mock(return_value=[older, newer])

    result = evaluate_alert(7, 'PM2.5', 90, 40, lookup, now=now)
    assert result is newer


@pytest.mark.parametrize("kwargs, field", [
    (dict(user_id=None, pollutant='PM2.5', measured_value=50, threshold=40), 'user_id'),
    (dict(user_id=7, pollutant='xyz', measured_value=50, threshold=40), 'pollutant'),
    (dict(user_id=7, pollutant=None, measured_value=50, threshold=40), 'pollutant'),
    (dict(user_id=7, pollutant='PM2.5', measured_value=50, threshold=0), 'threshold'),
    (dict(user_id=7, pollutant='PM2.5', measured_value=50, threshold=None), 'threshold'),
    (dict(user_id=7, pollutant='PM2.5', measured_value=-1, threshold=40), 'measured_value'),
])
def test_invalid_input_is_rejected(mocker, kwargs, field):
    lookup = mocker.Mock(return_value=[])
    with pytest.raises(InvalidInputError) as excinfo:
        evaluate_alert(lookup=lookup, **kwargs)
    assert excinfo.value.field == field
    lookup.assert_not_called()


# --- Dedup window with a real store ---

def test_second_breach_within_window_returns_first_alert(store, now):
    first = raise_alert(store, 7, 'PM2.5', 90, 40, now=now)
    second = raise_alert(store, 7, 'PM2.5', 95, 40, now=now + timedelta(hours=1))

    assert first.alert_id == 1
    assert second is first
    assert len(store) == 1


def test_breach_after_window_creates_new_alert(store, now):
    first = raise_alert(store, 7, 'PM2.5', 90, 40, now=now)
    later = raise_alert(store, 7, 'PM2.5', 90, 40, now=now + timedelta(hours=5))

    assert later is not first
    assert later.alert_id == 2
    assert len(store) == 2


def test_dedup_key_includes_pollutant_and_user(store, now):
    raise_alert(store, 7, 'PM2.5', 90, 40, now=now)
    other_pollutant = raise_alert(store, 7, 'PM10', 90, 40, now=now)
    other_user = raise_alert(store, 8, 'PM2.5', 90, 40, now=now)

    assert other_pollutant.alert_id == 2
    assert other_user.alert_id == 3


def test_raise_alert_without_breach_saves_nothing(store, now):
    assert raise_alert(store, 7, 'PM2.5', 10, 40, now=now) is None
    assert len(store) == 0


# --- Tests for evaluate_thresholds ---

def test_evaluate_thresholds_checks_each_applicable_threshold(store, now):
    measurement = MeasurementRecord(station_id=1, station_name="Centro", pm25=90, pm10=30)
    thresholds = [
        AlertThreshold(7, 'PM2.5', 40),
        AlertThreshold(7, 'PM10', 50),                 # not exceeded
        AlertThreshold(8, 'PM2.5', 100),               # not exceeded
        AlertThreshold(9, 'PM2.5', 40, station_id=2),  # other station
        AlertThreshold(7, 'pm25', 30),                 # same user and pollutant
        AlertThreshold(10, 'NO2', 20),                 # not measured
    ]
    alerts = evaluate_thresholds(measurement, thresholds, store.find_similar, now=now)

    assert len(alerts) == 1
    assert alerts[0].user_id == 7
    assert alerts[0].threshold == 40
    assert alerts[0].station_name == "Centro"
    assert "en Centro" in alerts[0].message


# --- Configuration ---

def test_dedup_window_from_config(mocker):
    mocker.patch('aire.config_loader.CONFIG', {'alerts': {'dedup_window_hours': 2}})
    assert dedup_window() == timedelta(hours=2)


@pytest.mark.parametrize("config", [{}, {'alerts': {'dedup_window_hours': 'soon'}}])
def test_dedup_window_falls_back_to_default(mocker, config):
    mocker.patch('aire.config_loader.CONFIG', config)
    assert dedup_window() == DEFAULT_DEDUP_WINDOW == timedelta(hours=4)


def test_build_alert_message():
    title, message = build_alert_message('CO', "Yanahuara", 12000, 10000)
    assert title == "Alerta de CO"
    assert message.endswith("superando su umbral configurado de 10000.0 μg/m³")
