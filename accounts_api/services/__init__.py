"""
High-level use cases for the accounts API.

Service modules orchestrate the repository and the hashing, mail, session and
social-provider collaborators (register, login, verify, reset password).
Routers call these services instead of touching the database directly.
"""
