"""Configuration, security and access control."""
