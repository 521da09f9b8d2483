"""Pydantic data models for altai."""
