# File: aire/alerts/store.py

"""
In-memory alert store.

Plays the persistence collaborator for the rules engine: it answers the
"similar recent alerts" lookup and keeps saved alerts. A lock makes each
call a consistent snapshot; it does not make evaluate-then-save atomic.
"""

import logging
import threading

from aire.exceptions import AlertNotFoundError, InvalidInputError

log = logging.getLogger(__name__)


class InMemoryAlertStore:
    """Thread-safe list of AlertRecords with the queries the rules engine needs."""

    def __init__(self, alerts=None):
        self._lock = threading.Lock()
        self._next_id = 1
        self._alerts = []
        for alert in alerts or ():
            self.save(alert)

    def __len__(self):
        with self._lock:
            return len(self._alerts)

    def save(self, alert):
        """Stores the alert, assigning the next alert_id when it has none."""
        with self._lock:
            if alert.alert_id is None:
                alert.alert_id = self._next_id
            self._next_id = max(self._next_id, alert.alert_id + 1)
            self._alerts = [a for a in self._alerts if a.alert_id != alert.alert_id]
            self._alerts.append(alert)
        log.debug(f"Saved alert {alert.alert_id} for user {alert.user_id}.")
        return alert

    def find_similar(self, user_id, alert_type, pollutant, since):
        """Alerts of this user, type and pollutant created at or after `since`, newest first."""
        with self._lock:
            matches = [
                a for a in self._alerts
                if a.user_id == user_id and a.alert_type == alert_type
                and a.pollutant == pollutant and a.created_at >= since
            ]
        return sorted(matches, key=lambda a: a.created_at, reverse=True)

    def get(self, alert_id):
        with self._lock:
            for alert in self._alerts:
                if alert.alert_id == alert_id:
                    return alert
        log.warning(f"Alert {alert_id} not found.")
        raise AlertNotFoundError(alert_id)

    def purge_before(self, cutoff):
        """Deletes alerts created before `cutoff` and returns how many were removed."""
        with self._lock:
            kept = [a for a in self._alerts if a.created_at >= cutoff]
            removed = len(self._alerts) - len(kept)
            self._alerts = kept
        log.info(f"Purged {removed} alerts created before {cutoff}.")
        return removed

    def unread_for_user(self, user_id):
        """Unread alerts of a user, newest first."""
        with self._lock:
            unread = [a for a in self._alerts if a.user_id == user_id and not a.read]
        return sorted(unread, key=lambda a: a.created_at, reverse=True)

    def count_unread(self, user_id):
        return len(self.unread_for_user(user_id))

    def mark_read(self, alert_id, user_id, now=None):
        """
        Marks one of the user's alerts as read.

        Raises:
            AlertNotFoundError: If no alert has this id.
            InvalidInputError: If the alert belongs to another user.
        """
        alert = self.get(alert_id)
        if alert.user_id != user_id:
            log.warning(f"User {user_id} tried to mark alert {alert_id} of user {alert.user_id} as read.")
            raise InvalidInputError(f"Alert {alert_id} does not belong to user {user_id}", field="user_id")
        with self._lock:
            alert.mark_read(now)
        log.info(f"Alert {alert_id} marked as read by user {user_id}.")
        return alert
