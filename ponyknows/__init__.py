"""PonyKnows portal: forum, file services and role-based access control."""

__version__ = "0.3.0"
