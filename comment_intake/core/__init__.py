"""Core infrastructure: logging, request context, middleware, database."""
