"""Integrations with third-party clients."""
