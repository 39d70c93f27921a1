"""Caller authentication and authorization."""
