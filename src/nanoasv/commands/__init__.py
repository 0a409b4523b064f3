# src/nanoasv/commands/__init__.py
"""
Command package.

Submodules are imported explicitly by nanoasv.cli to avoid circular imports.
Do NOT import submodules here.
"""
__all__ = [
    "init",
    "doctor",
    "metadata_validate",
    "trim",
    "denoise",
    "cluster",
    "compare",
    "auto_run",
]
