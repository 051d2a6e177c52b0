"""Batch scoring of measurement tables."""
