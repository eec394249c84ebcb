"""
Flood watch monitor package.

Polls a single water-level sensor device over HTTP, normalizes its telemetry,
tracks level trend over a rolling window, sends one SMS alert per excursion
above the warning level, and keeps an append-only daily JSONL log.

CHANGELOG:
- 2026-10-17: Initial creation (FW-001)

TODO:
- None
"""
