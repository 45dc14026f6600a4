"""Shared utilities and error types."""
