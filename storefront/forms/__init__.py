"""Request validation forms."""
