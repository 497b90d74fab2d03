"""Shared timer domain types, events, errors and formatting helpers."""
