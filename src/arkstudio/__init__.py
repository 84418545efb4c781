"""Ark Image Studio - prompt and reference-image front end for Seedream generation."""

__version__ = "0.1.0"
