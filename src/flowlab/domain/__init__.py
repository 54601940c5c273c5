"""Domain layer — source units, declaration rewriting, markup compilation.

This layer depends only on stdlib and pydantic.
It must never import from runtime, services, commands, or config.
"""
