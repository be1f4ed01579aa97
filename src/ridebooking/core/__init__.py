"""Shared error hierarchy and retry helpers."""
