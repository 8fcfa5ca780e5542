"""Subsystem analysis and wiki generation pipeline."""
