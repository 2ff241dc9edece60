"""Batch job entrypoints."""
