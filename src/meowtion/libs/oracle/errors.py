"""Exceptions raised by the oracle client."""

from __future__ import annotations


class OracleError(RuntimeError):
    """Base class for failures talking to the multimodal oracle."""


class OracleResponseError(OracleError):
    """The oracle reply could not be parsed or violated the declared schema."""


class OracleUnavailableError(OracleResponseError):
    """The oracle could not be reached (transport failure or timeout)."""
