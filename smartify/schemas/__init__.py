"""
schemas/ — Pydantic request models for the Smartify API

Provides input validation, auto-generated OpenAPI docs, and
consistent error messages across all endpoints.
"""
