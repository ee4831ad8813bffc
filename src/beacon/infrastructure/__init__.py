"""Infrastructure for the telemetry SDK: local storage and network delivery."""
