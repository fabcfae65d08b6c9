"""Figure models and storage."""

from collector.figures.repository import FigurePredicate, FigureRepository
from collector.figures.schemas import (
    ArtistRole,
    CompanyRole,
    Figure,
    Release,
    derive_manufacturer,
)

__all__ = [
    "ArtistRole",
    "CompanyRole",
    "Figure",
    "FigurePredicate",
    "FigureRepository",
    "Release",
    "derive_manufacturer",
]
