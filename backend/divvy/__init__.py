"""Divvy: shared household expense attribution and budget tracking."""
