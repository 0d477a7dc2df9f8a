"""Abstract interfaces the services depend on.

Learn: services only see these ABCs. Production wiring plugs in the
SQLAlchemy/Redis/SMTP/Supabase adapters, tests plug in the in-memory
doubles from repositories.memory (see container.py).
"""
