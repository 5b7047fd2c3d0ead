"""Device interaction history services."""
