"""
Portal Application
==================

FastAPI service providing the landing endpoint, password and federated
sign-in configuration, and server-side session retrieval.

Packages:
    - auth:  sign-in callbacks, session tokens, providers, /auth routes
    - db:    SQLAlchemy models and the user adapter
    - users: /users profile routes
"""
