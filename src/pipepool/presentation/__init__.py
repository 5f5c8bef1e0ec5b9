"""Presentation layer package."""
