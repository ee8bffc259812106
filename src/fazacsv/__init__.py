"""fazacsv: Convert BOM/PINS assembly exports into faza CSV files."""

__version__ = "0.1.0"

from .aggregator import parse_file, parse_text
from .models import GenerationResult, ParseResult, PartRecord
from .pipeline import generate

__all__ = [
    "GenerationResult",
    "ParseResult",
    "PartRecord",
    "generate",
    "parse_file",
    "parse_text",
]
