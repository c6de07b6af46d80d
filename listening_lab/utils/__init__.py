"""Shared helpers: environment loading, constants, logging and time formatting."""
