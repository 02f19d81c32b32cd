"""
CLI: composición de comandos (Typer) y presentación (Rich).
"""
