"""
Chain Configuration Loader

Reads and writes ``chain_config.json`` and reads validator set files.
"""

import json
import os
from typing import Any, Dict

from loguru import logger

from ..errors import ChainConfigError, PersistenceError
from .types import NetworkConfiguration, ValidatorSet

CHAIN_CONFIG_FILE = "chain_config.json"
VALIDATOR_SET_FILE = "validator_set.json"


def _read_json(path: str) -> Dict[str, Any]:
    if not os.path.exists(path):
        raise ChainConfigError(f"Configuration file not found: {path}")
    try:
        with open(path, "r") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ChainConfigError(f"Invalid configuration file {path}: {e}") from e


class ChainConfigStore:
    """Persists the chain topology under a chain base directory"""

    def __init__(self, base_dir: str):
        self.base_dir = base_dir

    @property
    def path(self) -> str:
        return os.path.join(self.base_dir, CHAIN_CONFIG_FILE)

    def load(self) -> NetworkConfiguration:
        """Load the chain config written by ``init chain``"""
        data = _read_json(self.path)
        try:
            return NetworkConfiguration.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise ChainConfigError(f"Invalid chain config {self.path}: {e}") from e

    def save(self, config: NetworkConfiguration) -> None:
        """Write the chain config, readable and writable by the owner only"""
        body = self.dumps(config)
        try:
            os.makedirs(self.base_dir, exist_ok=True)
            fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w") as f:
                f.write(body)
            os.chmod(self.path, 0o600)
        except OSError as e:
            raise PersistenceError(f"Failed to write {self.path}: {e}") from e
        logger.debug(f"Chain config saved to {self.path}")

    @staticmethod
    def dumps(config: NetworkConfiguration) -> str:
        return json.dumps(config.to_dict(), indent="\t")


def load_validator_set(valset_dir: str) -> ValidatorSet:
    """Load ``validator_set.json`` from a validator set directory"""
    data = _read_json(os.path.join(valset_dir, VALIDATOR_SET_FILE))
    try:
        return ValidatorSet.from_dict(data)
    except (KeyError, TypeError) as e:
        raise ChainConfigError(f"Invalid validator set in {valset_dir}: {e}") from e
