"""Caller-facing standing tools."""
