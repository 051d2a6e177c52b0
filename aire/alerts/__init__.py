"""Alert rules engine: severity, duplicate suppression and the alert store."""
