"""Runtime layer — capability registry, sandbox executor, capability modules.

Depends on the domain layer and third-party libs (NetworkX).
It must never import from services, commands, or output.
"""
