"""Authentication: JWT tokens, password hashing, FastAPI dependencies."""
