"""Nugate command line interface."""
