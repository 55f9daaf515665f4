"""Trade API proxy service."""
