"""Parallel bulk-load pipeline: barrier, workers, accounting and reporting."""
