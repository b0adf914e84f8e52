"""JSON Schemas for the window request/reply protocol."""
