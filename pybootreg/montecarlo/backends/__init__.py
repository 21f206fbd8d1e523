"""Bootstrap backends."""
