"""Shared helpers used across LOGSYNC services."""
