"""Domain models for the workshop registration sheet sync.

This package contains the value types passed between the sheet pipeline,
the sync orchestrator and the registration store.
"""

from .column_map import FIELDS, UNRESOLVED, ColumnMap
from .error_record import ErrorRecord
from .records import FinancialSnapshot, OtherCost, Registration, Workshop
from .registration import NormalizedRegistration, PaymentStatus
from .sync_result import RowFailure, SyncResult

__all__ = [
    # Sheet pipeline models
    "ColumnMap",
    "FIELDS",
    "UNRESOLVED",
    "NormalizedRegistration",
    "PaymentStatus",
    # Stored records
    "FinancialSnapshot",
    "OtherCost",
    "Registration",
    "Workshop",
    # Sync outcome
    "ErrorRecord",
    "RowFailure",
    "SyncResult",
]
