"""Redis connection management and Redis-backed infrastructure ports."""
