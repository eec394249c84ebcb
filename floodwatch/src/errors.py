"""
Exception types raised by the flood watch monitor.

Malformed device payloads are not represented here: they are parsed with a
default-zero policy (see normalizer.parse_sample) and never raise.

CHANGELOG:
- 2026-10-17: Initial creation (FW-002)
"""

from __future__ import annotations


class FloodwatchError(Exception):
    """Base class for all flood watch errors."""


class TransientFetchError(FloodwatchError):
    """A device or gateway network call failed (timeout, refused, non-2xx)."""


class LogStoreError(FloodwatchError):
    """Reading or writing a daily log partition failed at the filesystem level."""


class ConfigurationMissingError(FloodwatchError):
    """An optional feature was requested without the configuration it needs."""
