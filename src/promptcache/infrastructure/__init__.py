"""Infrastructure layer.

This package provides implementations for external system integrations
including key/value persistence (in-memory, Redis), the upstream chat
completion client and cache metrics.
"""
