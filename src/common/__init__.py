"""Shared helpers: HTTP, logging and process execution."""
