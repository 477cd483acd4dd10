"""
Persistence adapters.

Services depend on the repository (find/create/save/exists) rather than on
SQLAlchemy sessions.
"""
