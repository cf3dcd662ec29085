"""Nugate: write-time validation for Nushell scripts."""

__version__ = "0.1.0-dev"
