"""
Configuration management for the upload server.

Contains Pydantic settings read from the environment, an optional .env file
and CLI overrides.
"""
