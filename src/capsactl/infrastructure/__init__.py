"""Infrastructure layer — filesystem access, capsa location, note resolution.

This layer may import pure helpers from the domain layer.
It must never import from services, commands, or output.
"""
