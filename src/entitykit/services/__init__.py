"""Engines: parse, serialize, validate, compare, update, dependencies.

Services may import from the domain and config layers.
They must never import from plugins.
"""
