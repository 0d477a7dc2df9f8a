"""Aggregates, value objects and domain events."""
