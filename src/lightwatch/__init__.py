"""lightwatch: симулятор светофоров с монитором живости (heartbeat + sweep)."""

__version__ = "0.1.0"
