# File: aire/alerts/models.py

"""
Value types for the alert rules engine.

AlertRecord lifecycle inside this package: created (unread) -> read.
Deletion and bulk operations belong to the surrounding system.
"""

import enum
import functools
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from aire.exceptions import InvalidInputError
from aire.health_rules.readings import normalize_pollutant

log = logging.getLogger(__name__)


class AlertType(enum.Enum):
    CALIDAD_AIRE = "CALIDAD_AIRE"
    PREDICCION = "PREDICCION"
    MANTENIMIENTO = "MANTENIMIENTO"
    SISTEMA = "SISTEMA"


@functools.total_ordering
class Severity(enum.Enum):
    """Alert severities, ordered BAJA < MEDIA < ALTA < CRITICA."""
    BAJA = 1
    MEDIA = 2
    ALTA = 3
    CRITICA = 4

    def __lt__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.value < other.value


SEVERITY_COLORS = {
    Severity.BAJA: "#28a745",     # green
    Severity.MEDIA: "#ffc107",    # amber
    Severity.ALTA: "#fd7e14",     # orange
    Severity.CRITICA: "#dc3545",  # red
}
DEFAULT_SEVERITY_COLOR = "#6c757d"  # gray


def color_for_severity(severity):
    return SEVERITY_COLORS.get(severity, DEFAULT_SEVERITY_COLOR)


@dataclass(frozen=True)
class AlertThreshold:
    """
    A user's configured limit for one pollutant, optionally bound to a station.

    Attributes:
        user_id: Owner of the threshold.
        pollutant: Canonical pollutant name.
        limit: Concentration in µg/m³; must be > 0.
        station_id: When set, only measurements from this station are checked.
    """

    user_id: int
    pollutant: str
    limit: float
    station_id: Optional[int] = None

    def __post_init__(self):
        if self.user_id is None:
            log.error(f"Rejected threshold for {self.pollutant!r} without a user_id")
            raise InvalidInputError("AlertThreshold requires a user_id", field="user_id")
        canonical = normalize_pollutant(self.pollutant)
        if canonical is None:
            log.error(f"Rejected threshold for unknown pollutant {self.pollutant!r} (user {self.user_id})")
            raise InvalidInputError(f"Unknown pollutant: {self.pollutant!r}", field="pollutant")
        object.__setattr__(self, "pollutant", canonical)
        if self.limit is None or self.limit <= 0:
            log.error(f"Rejected threshold {self.limit!r} for user {self.user_id}/{canonical}")
            raise InvalidInputError(f"Threshold must be > 0, got {self.limit!r}", field="limit")

    def applies_to(self, station_id) -> bool:
        return self.station_id is None or self.station_id == station_id


@dataclass
class AlertRecord:
    """
    An alert produced for a user when a measured value breaches their threshold.

    `alert_id` stays None until a store persists the record, which is how
    callers tell a freshly built alert from a suppressed duplicate.
    """

    user_id: int
    alert_type: AlertType
    severity: Severity
    title: str
    message: str
    pollutant: str
    measured_value: Optional[float] = None
    threshold: Optional[float] = None
    station_id: Optional[int] = None
    station_name: Optional[str] = None
    color: str = ""
    read: bool = False
    read_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=datetime.now)
    alert_id: Optional[int] = None

    def __post_init__(self):
        if not self.color:
            self.color = color_for_severity(self.severity)

    @property
    def is_persisted(self) -> bool:
        return self.alert_id is not None

    def mark_read(self, now=None):
        """Moves the alert to the read state. A second call keeps the first read time."""
        if not self.read:
            self.read = True
            self.read_at = now or datetime.now()
        return self

    def to_dict(self) -> dict:
        return {
            "id": self.alert_id,
            "user_id": self.user_id,
            "station_id": self.station_id,
            "station_name": self.station_name,
            "type": self.alert_type.value,
            "severity": self.severity.name,
            "title": self.title,
            "message": self.message,
            "measured_value": self.measured_value,
            "threshold": self.threshold,
            "pollutant": self.pollutant,
            "color": self.color,
            "read": self.read,
            "read_at": self.read_at.isoformat() if self.read_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
