# File: aire/exceptions.py

"""
Custom exception classes for the aire package.

Every error raised on purpose by the AQI engine, the alert rules engine,
the alert store or the configuration layer derives from AireError, so the
surrounding web layer can translate them into responses with a single except.
"""


class AireError(Exception):
    """Base class for all errors raised by the aire package."""
    pass


# --- Configuration Errors ---

class ConfigError(AireError):
    """Raised when the configuration cannot be parsed or is unusable."""
    pass


class ConfigFileNotFoundError(ConfigError, FileNotFoundError):
    """Raised when config/config.yaml does not exist."""
    pass


# --- Data Errors ---

class DataFileNotFoundError(AireError, FileNotFoundError):
    """Raised when a measurement file to be processed cannot be found."""
    pass


class InvalidInputError(AireError, ValueError):
    """Raised for caller contract violations.

    Covers negative concentrations, thresholds that are not strictly positive,
    unknown pollutants and missing user or pollutant identifiers. These are
    never retried.

    Attributes:
        field (str | None): Name of the offending input, when known.
    """
    def __init__(self, message, field=None):
        super().__init__(message)
        self.field = field


# --- Alert Store Errors ---

class AlertNotFoundError(AireError, LookupError):
    """Raised when an alert id is not known to the store."""
    def __init__(self, alert_id):
        super().__init__(f"Alert not found: {alert_id}")
        self.alert_id = alert_id
