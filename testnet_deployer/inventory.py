"""Host inventory for the SSH transport: maps host names to connection details."""
from __future__ import annotations

from dataclasses import dataclass
import json
from typing import Dict, Optional


@dataclass
class HostSpec:
    name: str
    ip: str
    ssh_user: str = "root"
    ssh_key_path: Optional[str] = None
    port: int = 22


def load_hosts(file_path: str) -> Dict[str, HostSpec]:
    with open(file_path, "r") as f:
        data = json.load(f)
    return {item["name"]: HostSpec(**item) for item in data}
