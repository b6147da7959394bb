"""Inkwell: content lifecycle and comment moderation for a publishing platform."""

__version__ = "0.1.0"
