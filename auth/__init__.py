"""
Auth package for the Shortlink Platform API.

Resolves HTTP Basic credentials to an owner id before the request reaches
the shortening service; the service itself never sees credentials.
"""
