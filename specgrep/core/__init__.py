"""Core infrastructure: exceptions, logging and settings."""
