"""Scanning, caching, indexing and the inspection engine."""
