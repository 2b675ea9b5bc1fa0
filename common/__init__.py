"""Shared building blocks for the episode fixer."""
