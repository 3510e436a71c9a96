"""Outreach workflow engine."""
