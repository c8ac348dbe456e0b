"""Shared utilities for brxm_inspect."""
