"""
Core utilities shared across the accounts API.

Configuration, the error taxonomy, password hashing and the mailer live here
so that services and routers depend on these primitives instead of reading
the environment or talking to SMTP directly.
"""
