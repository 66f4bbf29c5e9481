"""Shared helpers used across the registration core and the HTTP bridge."""
