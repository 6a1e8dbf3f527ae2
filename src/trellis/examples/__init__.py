"""Example panels."""
