"""Command line interface for durable-params."""
