"""Shared utilities for testgenie."""
