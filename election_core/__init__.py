"""Core (UI-agnostic) election dashboard logic.

This package contains:
- record normalization (JSON rows -> MarketRecord -> pandas)
- explorer state (search query, sort field/direction)
- the filter/sort engine behind the market table
- accuracy / win-rate statistics per day horizon
- chart helpers (Altair -> Vega-Lite spec dict)
"""
