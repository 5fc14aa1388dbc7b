# Exception package for the War Tracker
from .wartracker_exceptions import (
    WarTrackerError,
    DatabaseError,
    DatabaseConnectionError,
    DatabaseOperationError,
    APIError,
    WarLogAPIError,
    NotFoundError,
    TransientAPIError,
    APITimeoutError,
    ConfigError,
    MissingConfigError,
    InvalidConfigError,
    ValidationError,
    InvalidTagError,
    InvalidInputError,
    ReconciliationError,
    NoWarLogDataError,
    NoStandingDataError,
    MissingSnapshotError,
)

__all__ = [
    'WarTrackerError',
    'DatabaseError',
    'DatabaseConnectionError',
    'DatabaseOperationError',
    'APIError',
    'WarLogAPIError',
    'NotFoundError',
    'TransientAPIError',
    'APITimeoutError',
    'ConfigError',
    'MissingConfigError',
    'InvalidConfigError',
    'ValidationError',
    'InvalidTagError',
    'InvalidInputError',
    'ReconciliationError',
    'NoWarLogDataError',
    'NoStandingDataError',
    'MissingSnapshotError',
]
