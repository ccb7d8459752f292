"""Core configuration, constants, errors and helpers."""
