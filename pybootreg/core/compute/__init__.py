"""Compute primitives: timing and dense linear algebra."""
