"""World tool adapters (RCON transport and dry-run executor)."""

from .rcon import RconConnection, RconWorldExecutor
from .world_command import (
    ERR_PREFIX,
    EchoWorldExecutor,
    WorldCommand,
    WorldConnection,
    WorldExecutor,
    check_response,
    run_sequence,
)

__all__ = [
    "ERR_PREFIX",
    "EchoWorldExecutor",
    "RconConnection",
    "RconWorldExecutor",
    "WorldCommand",
    "WorldConnection",
    "WorldExecutor",
    "check_response",
    "run_sequence",
]
