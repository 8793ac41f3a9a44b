"""Core (UI-agnostic) immunization coverage dashboard logic.

This package contains:
- data loading (CSV/GeoJSON -> typed records)
- filter normalization and filtering
- latest-year snapshots, metrics and sorting
- comparison selection state and view coordination
- chart helpers (Altair -> Vega-Lite spec dict)
"""
