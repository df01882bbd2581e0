"""
Application Layer

Coordinates the domain metric model with the outside world: the metric
registry that produces per-cycle snapshots and the interfaces the reporter
needs from infrastructure.
"""
