"""HTTP query interface over the telemetry monitor (FastAPI)."""
