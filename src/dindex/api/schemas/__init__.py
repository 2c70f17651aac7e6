"""Pydantic request/response schemas for the dindex API."""
