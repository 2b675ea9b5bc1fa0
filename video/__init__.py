"""MKV episode workflows."""
