"""Logging configuration and prometheus metrics."""
