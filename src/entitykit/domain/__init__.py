"""Domain layer: problems, field declarations, validators, and registries.

This layer depends only on stdlib and pydantic.
It must never import from services, config, or plugins.
"""
