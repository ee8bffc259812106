"""Exception types raised by the parsing and generation core."""

from __future__ import annotations


class FazaCsvError(Exception):
    """Base class for all errors raised by fazacsv."""


class UnknownFormatError(FazaCsvError, ValueError):
    """The format selector names neither the BOM nor the PINS format."""


class ValidationError(FazaCsvError):
    """Inputs to a generation call are unusable (empty BOM, no program)."""
