"""
Services Package

Migration pipeline and day-level settings operations for weekly meal
slot availability.
"""

from .categories import (
    DaySettingsError,
    RecordParseError,
    ConversionResult,
    derive_categories,
    default_categories,
    is_well_formed,
    convert,
    convert_all,
)

from .storage import (
    BackendUnavailable,
    BackendConnectionError,
    WriteFailure,
    WriteReport,
    EmbeddedBackend,
    RelationalBackend,
    get_backend,
    infer_backend_name,
    read_legacy_records,
    describe_table,
)

from .verification import (
    VerificationReport,
    verify,
)

from .migration import (
    MigrationState,
    MigrationStateError,
    MigrationSummary,
    MigrationRun,
    migrate,
)

from .day_level import (
    InvalidDayError,
    get_week_settings,
    toggle_day,
    is_day_fully_enabled,
    get_week_summary,
    batch_toggle,
)

__all__ = [
    # Errors
    'DaySettingsError',
    'RecordParseError',
    'BackendUnavailable',
    'BackendConnectionError',
    'WriteFailure',
    'MigrationStateError',
    'InvalidDayError',
    # Conversion
    'ConversionResult',
    'derive_categories',
    'default_categories',
    'is_well_formed',
    'convert',
    'convert_all',
    # Storage
    'WriteReport',
    'EmbeddedBackend',
    'RelationalBackend',
    'get_backend',
    'infer_backend_name',
    'read_legacy_records',
    'describe_table',
    # Verification
    'VerificationReport',
    'verify',
    # Migration run
    'MigrationState',
    'MigrationSummary',
    'MigrationRun',
    'migrate',
    # Day-level operations
    'get_week_settings',
    'toggle_day',
    'is_day_fully_enabled',
    'get_week_summary',
    'batch_toggle',
]
