"""Voyant HTTP layer: route modules and request/response schemas."""
