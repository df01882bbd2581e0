"""
Infrastructure Layer

Database access, reporting schedulers, configuration and monitoring for the
metrics reporter.
"""
