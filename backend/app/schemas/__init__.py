"""Pydantic value types and HTTP contracts."""
