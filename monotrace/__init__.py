"""Trace-event aggregation and call-stack reconstruction for Mono runtime traces."""

__version__ = "0.1.0"
