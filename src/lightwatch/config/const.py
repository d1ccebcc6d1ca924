# src/lightwatch/config/const.py
from __future__ import annotations

# значения по умолчанию (переопределяются через ENV/.env/YAML, см. services/settings.py)
MONITOR_HOST: str = "localhost"
MONITOR_PORT: int = 5000

HEARTBEAT_INTERVAL_SEC: float = 3.0
HEARTBEAT_TIMEOUT_SEC: float = 10.0
SWEEP_PERIOD_SEC: float = 2.0

RED_DURATION_SEC: float = 10.0
GREEN_DURATION_SEC: float = 10.0
YELLOW_DURATION_SEC: float = 3.0

# правило начального состояния: trailing number % MODULUS == GREEN_RESIDUE -> GREEN
INITIAL_STATE_MODULUS: int = 3
INITIAL_STATE_GREEN_RESIDUE: int = 2

DEFAULT_NODE_ID: str = "Node1"
ENV_PREFIX: str = "LIGHTWATCH_"
