"""Query package: read-only aggregations over the dataset."""

from rental_manager.queries.portfolio import PortfolioQueries, PortfolioSummary

__all__ = [
    "PortfolioQueries",
    "PortfolioSummary",
]
