"""Shared helpers for route handlers."""
