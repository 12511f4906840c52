"""Structured log-event helpers."""
