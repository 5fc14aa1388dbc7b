"""
Custom Exception Hierarchy for the War Tracker
Provides specific exception types so each pipeline stage can tell
expected failures apart from unexpected ones
"""


class WarTrackerError(Exception):
    """
    Base exception for all War Tracker errors
    All custom exceptions should inherit from this
    """
    pass


# ==================== Database Errors ====================

class DatabaseError(WarTrackerError):
    """Base class for all database-related errors"""
    pass


class DatabaseConnectionError(DatabaseError):
    """
    Raised when the database cannot be opened

    Example:
        raise DatabaseConnectionError("Failed to connect to wartracker.db")
    """
    pass


class DatabaseOperationError(DatabaseError):
    """
    Raised when a database operation fails (INSERT, UPDATE, DELETE)

    Example:
        raise DatabaseOperationError("Failed to insert player war histories")
    """
    pass


# ==================== API Errors ====================

class APIError(WarTrackerError):
    """Base class for external API errors"""
    pass


class WarLogAPIError(APIError):
    """
    War log API errors that are neither "not found" nor transient

    Attributes:
        status_code: HTTP status code from API
        response: API response body
    """
    def __init__(self, message, status_code=None, response=None):
        super().__init__(message)
        self.status_code = status_code
        self.response = response


class NotFoundError(APIError):
    """
    Raised when the API reports that a clan or player does not exist.
    Never retried.

    Example:
        raise NotFoundError("Clan 'ABC123' not found in API")
    """
    pass


class TransientAPIError(APIError):
    """
    Raised after retries are exhausted for rate limits, 5xx responses
    and connection failures
    """
    pass


class APITimeoutError(TransientAPIError):
    """
    Raised when API request times out

    Example:
        raise APITimeoutError("War log request timed out after 30s")
    """
    pass


# ==================== Configuration Errors ====================

class ConfigError(WarTrackerError):
    """Base class for configuration-related errors"""
    pass


class MissingConfigError(ConfigError):
    """
    Raised when required configuration is missing

    Example:
        raise MissingConfigError("WAR_API_TOKEN not found in environment")
    """
    pass


class InvalidConfigError(ConfigError):
    """
    Raised when configuration value is invalid

    Example:
        raise InvalidConfigError("ROSTER_CLAN_CAPACITY must be an integer")
    """
    pass


# ==================== Data Validation Errors ====================

class ValidationError(WarTrackerError):
    """Base class for data validation failures"""
    pass


class InvalidTagError(ValidationError):
    """
    Raised when a clan or player tag is malformed

    Example:
        raise InvalidTagError("Clan tag must be at least 3 characters long")
    """
    pass


class InvalidInputError(ValidationError):
    """
    Raised when operator input is invalid

    Example:
        raise InvalidInputError("Fame must be a non-negative integer")
    """
    pass


# ==================== Reconciliation Errors ====================

class ReconciliationError(WarTrackerError):
    """Base class for failures while turning the war log into history"""
    pass


class NoWarLogDataError(ReconciliationError):
    """Raised when the API returns an empty war log for a clan"""
    pass


class NoStandingDataError(ReconciliationError):
    """
    Raised when no period in the war log has a standing for the clan

    Example:
        raise NoStandingDataError("No valid clan standings found in war log for 'ABC123'")
    """
    pass


class MissingSnapshotError(ReconciliationError):
    """
    Raised when war history is ingested for a period that has no
    clan history snapshot yet

    Attributes:
        season_id: season of the missing snapshot
        week_index: week of the missing snapshot
    """
    def __init__(self, message, season_id=None, week_index=None):
        super().__init__(message)
        self.season_id = season_id
        self.week_index = week_index
