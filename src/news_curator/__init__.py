"""Article curation and episode assembly for personalized news briefings."""

__version__ = "0.1.0"
