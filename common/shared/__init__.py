"""Shared configuration, reporting and progress helpers."""
