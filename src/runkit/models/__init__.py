"""Data models for persisted records and release metadata."""
