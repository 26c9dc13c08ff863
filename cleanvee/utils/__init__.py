"""Shared helpers for Cleanvee."""
