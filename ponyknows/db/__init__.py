"""Persistence layer for the PonyKnows portal."""
