"""Helpers shared across contentdesk."""
