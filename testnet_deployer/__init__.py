"""
Testnet Deployer

Stands up a multi-host test network: one data, app and core container
stack per host, a validator identity per host, a seed mesh between
hosts, and the resulting topology in ``chain_config.json``.

Main components:
- hosts: Machine range expressions
- pipeline: Per-host start pipeline
- fleet: Concurrent fan-out with one outcome per host
- topology: Slot assembly and seed dialing
- remote: SSH and docker-machine transports
"""

from .errors import DeployerError, StageError
from .fleet import FleetReport, HostFailure, HostSuccess, run_fleet
from .hosts import resolve
from .launch import launch_network
from .pipeline import Stage, StartOptions, StartPipeline

__version__ = "0.1.0"

__all__ = [
    "DeployerError",
    "StageError",
    "FleetReport",
    "HostFailure",
    "HostSuccess",
    "run_fleet",
    "resolve",
    "launch_network",
    "Stage",
    "StartOptions",
    "StartPipeline",
]
