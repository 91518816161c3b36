"""Optimistic shopping cart kept in sync with a remote cart API."""
