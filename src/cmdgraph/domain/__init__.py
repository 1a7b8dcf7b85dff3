"""Domain layer — lifecycle states, errors, and result models.

This layer depends only on stdlib and pydantic.
It must never import from commands, graph, plugins, or config.
"""
