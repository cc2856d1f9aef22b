"""Report assembly for the fleet reporting engine.

``aggregator.ReportAggregator`` is the entry point: it validates a request
(``requests``), fetches the ledger window through the collaborators declared
in ``domain.sources`` and builds one of the DTOs in ``models``.
"""

__all__ = [
    "aggregator",
    "common",
    "expense_summary",
    "models",
    "profitability",
    "requests",
    "travel",
    "yearly",
]
