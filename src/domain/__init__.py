"""Domain models and analytics for the fleet reporting engine.

The ledger projections are in-memory (Pydantic) models, independent from the
persistence models so the analytic components can be tested without a DB.
Every component here is synchronous and free of I/O.
"""

__all__ = [
    "actual_expense",
    "break_even",
    "consumption",
    "currency",
    "ledger",
    "mileage",
    "mileage_rates",
    "sources",
    "units",
]
