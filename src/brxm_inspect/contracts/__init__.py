"""Bundled JSON schemas and their validators."""
