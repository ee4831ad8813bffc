"""Shared utilities for the telemetry SDK."""
