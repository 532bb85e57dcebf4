"""Persistence implementations for identity storage."""
