"""Shared runtime helpers: logging, telemetry and calendar periods."""
