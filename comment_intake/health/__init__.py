"""Health check module."""

from comment_intake.health.router import router


__all__ = ["router"]
