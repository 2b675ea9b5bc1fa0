"""Media-specific helpers built on top of common.base."""
