"""Helpers for HTTP endpoint payloads."""
