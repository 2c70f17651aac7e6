"""ASGI middleware and exception handlers for the dindex API."""
