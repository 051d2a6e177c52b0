# File: tests/alerts/test_store.py

"""
Unit tests for the alert value types and the in-memory store
(`aire/alerts/models.py`, `aire/alerts/store.py`).
"""
from datetime import timedelta

import pytest

from aire.alerts.models import (
    DEFAULT_SEVERITY_COLOR,
    AlertRecord,
    AlertThreshold,
    AlertType,
    Severity,
    color_for_severity,
)
from aire.alerts.store import InMemoryAlertStore
from aire.exceptions import AlertNotFoundError, InvalidInputError


def make_alert(created_at, user_id=7, pollutant='PM2.5', severity=Severity.ALTA,
               alert_type=AlertType.CALIDAD_AIRE):
    return AlertRecord(
        user_id=user_id, alert_type=alert_type, severity=severity,
        title=f"Alerta de {pollutant}", message="test", pollutant=pollutant,
        measured_value=70.0, threshold=40.0, created_at=created_at,
    )


# --- AlertRecord / AlertThreshold ---

@pytest.mark.parametrize("severity, color", [
    (Severity.BAJA, "#28a745"),
    (Severity.MEDIA, "#ffc107"),
    (Severity.ALTA, "#fd7e14"),
    (Severity.CRITICA, "#dc3545"),
    (None, DEFAULT_SEVERITY_COLOR),
])
def test_color_for_severity(severity, color):
    assert color_for_severity(severity) == color


def test_alert_record_defaults(now):
    alert = make_alert(now)
    assert alert.color == "#fd7e14"
    assert alert.read is False
    assert alert.read_at is None
    assert not alert.is_persisted


def test_mark_read_is_idempotent(now):
    alert = make_alert(now)
    alert.mark_read(now + timedelta(minutes=5))
    alert.mark_read(now + timedelta(minutes=30))
    assert alert.read is True
    assert alert.read_at == now + timedelta(minutes=5)


def test_alert_record_to_dict(now):
    data = make_alert(now).to_dict()
    assert data['type'] == "CALIDAD_AIRE"
    assert data['severity'] == "ALTA"
    assert data['created_at'] == now.isoformat()
    assert data['read_at'] is None
    assert data['id'] is None


def test_threshold_validation():
    threshold = AlertThreshold(7, 'no2', 40)
    assert threshold.pollutant == 'NO2'
    assert threshold.applies_to(1) and threshold.applies_to(None)
    assert not AlertThreshold(7, 'NO2', 40, station_id=2).applies_to(1)

    with pytest.raises(InvalidInputError):
        AlertThreshold(7, 'NO2', 0)
    with pytest.raises(InvalidInputError):
        AlertThreshold(7, 'dust', 10)
    with pytest.raises(InvalidInputError):
        AlertThreshold(None, 'NO2', 10)


def test_threshold_rejections_are_logged(caplog):
    for args in [(None, 'NO2', 10), (7, 'dust', 10), (7, 'NO2', -1)]:
        with pytest.raises(InvalidInputError):
            AlertThreshold(*args)
    assert len([r for r in caplog.records if r.levelname == "ERROR"]) == 3


# --- InMemoryAlertStore ---

def test_save_assigns_incrementing_ids(store, now):
    first = store.save(make_alert(now))
    second = store.save(make_alert(now))
    assert (first.alert_id, second.alert_id) == (1, 2)
    assert first.is_persisted
    assert len(store) == 2


def test_save_existing_id_replaces_and_keeps_counter_ahead(now):
    preloaded = make_alert(now)
    preloaded.alert_id = 10
    store = InMemoryAlertStore([preloaded])
    assert store.save(make_alert(now)).alert_id == 11
    assert store.save(preloaded) is preloaded
    assert len(store) == 2


def test_find_similar_filters_and_orders(store, now):
    old = store.save(make_alert(now - timedelta(hours=6)))
    recent = store.save(make_alert(now - timedelta(hours=2)))
    newest = store.save(make_alert(now - timedelta(minutes=10)))
    store.save(make_alert(now, user_id=8))
    store.save(make_alert(now, pollutant='PM10'))
    store.save(make_alert(now, alert_type=AlertType.PREDICCION))

    found = store.find_similar(7, AlertType.CALIDAD_AIRE, 'PM2.5', now - timedelta(hours=4))
    assert found == [newest, recent]
    assert old not in found


def test_unread_and_mark_read(store, now):
    first = store.save(make_alert(now - timedelta(hours=1)))
    second = store.save(make_alert(now))
    store.save(make_alert(now, user_id=8))

    assert store.unread_for_user(7) == [second, first]
    assert store.count_unread(7) == 2

    store.mark_read(first.alert_id, 7, now=now)
    assert first.read and first.read_at == now
    assert store.count_unread(7) == 1


def test_mark_read_rejects_other_user(store, now):
    alert = store.save(make_alert(now))
    with pytest.raises(InvalidInputError):
        store.mark_read(alert.alert_id, 99)
    assert alert.read is False


def test_get_unknown_alert_raises(store):
    with pytest.raises(AlertNotFoundError) as excinfo:
        store.get(404)
    assert excinfo.value.alert_id == 404
    with pytest.raises(AlertNotFoundError):
        store.mark_read(404, 7)


def test_purge_before_removes_old_alerts(store, now):
    old = store.save(make_alert(now - timedelta(days=40)))
    recent = store.save(make_alert(now - timedelta(days=2)))

    assert store.purge_before(now - timedelta(days=30)) == 1
    assert len(store) == 1
    with pytest.raises(AlertNotFoundError):
        store.get(old.alert_id)
    assert store.get(recent.alert_id) is recent
    # Ids are never reused after a purge
    assert store.save(make_alert(now)).alert_id == 3
    assert store.purge_before(now - timedelta(days=30)) == 0
