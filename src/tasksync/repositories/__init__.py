"""Repository adapters: SQLAlchemy, Redis and in-memory."""
