"""AI tag generation."""
