"""Data models for script metadata records and reconciliation results."""
