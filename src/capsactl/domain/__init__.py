"""Domain layer — edit operations, markdown extraction, task models.

This layer depends only on the stdlib.
It must never import from services, infrastructure, commands, or config.
"""
