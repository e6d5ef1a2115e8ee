"""Shared helpers for :mod:`registry_search`."""
