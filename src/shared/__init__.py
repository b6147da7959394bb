"""Shared utilities used across the inkwell domains."""
