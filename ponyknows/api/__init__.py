"""FastAPI application for the PonyKnows portal."""
