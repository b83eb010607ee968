"""Foundation - core building blocks for leadgate.

Contains: wire data model, error taxonomy, settings, schema registry.
"""
