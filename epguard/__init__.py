"""
EPGuard - reconciliación de Extended Protection (tokenChecking) en una flota.

epguard.core: lógica pura (diff, coordinador, agregador).
epguard.cli: composición y presentación (Typer + Rich).
"""

__version__ = "1.0.0"
