"""
Punto de entrada: python -m epagent

Es el comando que el transporte SSH invoca en cada servidor.
"""

from epagent.agent import app

if __name__ == "__main__":
    app(prog_name="epagent")
