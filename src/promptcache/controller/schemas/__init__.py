"""API schemas for request/response serialization.

Provides Pydantic models for API request validation and response formatting.
Used by FastAPI route handlers for type-safe request/response handling.
"""
