"""Pydantic value types and configuration records."""
