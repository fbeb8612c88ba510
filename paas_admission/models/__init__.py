"""Pydantic models for custom resources and API schemas."""
