"""Data access for the cart engine."""
