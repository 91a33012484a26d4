"""Shared helpers used across the ingestion and query layers."""
