"""
Domain Layer - Metric Model

This layer contains:
- Metric types and the per-cycle metric snapshot
- Time units and unit conversion
- Metric filters and the clock interface
- The reporting exception hierarchy

No external dependencies allowed in this layer.
"""
