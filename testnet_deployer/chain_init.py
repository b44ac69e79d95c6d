"""
Chain Directory Initialisation

Lays out a chain base directory: shared init scripts for the data, app
and core services, one core directory per host, and the initial
``chain_config.json`` with one validator slot per host.
"""

import os
import shutil
from typing import List, Optional

from loguru import logger

from .configs.loader import ChainConfigStore, load_validator_set
from .configs.types import VALSET_ANON, NetworkConfiguration, Validator, ValidatorSlot
from .errors import ChainConfigError, PersistenceError

PRIV_VALIDATOR_FILE = "priv_validator.json"

SAMPLE_DATA_SCRIPT = """#! /bin/bash
# This is a sample bash script for MerkleEyes.
# NOTE: the deployer expects data.sock to be created

go get github.com/tendermint/merkleeyes/cmd/merkleeyes

merkleeyes server --address="unix:///data/tendermint/data/data.sock"
"""

SAMPLE_APP_SCRIPT = """#! /bin/bash
# This is a sample bash script for a TMSP application

cd app/
git clone https://github.com/tendermint/nomnomcoin.git
cd nomnomcoin
npm install .

node app.js --eyes="unix:///data/tendermint/data/data.sock"
"""

SAMPLE_CORE_SCRIPT = """#! /bin/bash
# This is a sample bash script for tendermint core
# Edit this script before "testnet-deployer start" to change
# the core blockchain engine.

TMREPO="github.com/tendermint/tendermint"
BRANCH="master"

go get -d $TMREPO/cmd/tendermint
cd $GOPATH/src/$TMREPO
git fetch origin $BRANCH
git checkout $BRANCH
make install

tendermint node --seeds="$TMSEEDS" --moniker="$TMNAME" --proxy_app="$PROXYAPP"
"""


def _write_script(path: str, body: str) -> None:
    with open(path, "w") as f:
        f.write(body)
    os.chmod(path, 0o777)


def _ensure_dir(path: str) -> None:
    os.makedirs(path, mode=0o777, exist_ok=True)


def init_chain(
    base_dir: str,
    hosts: List[str],
    validator_set_dir: Optional[str] = None,
    app_script: Optional[str] = None,
) -> NetworkConfiguration:
    """
    Initialise ``base_dir`` for a chain run on ``hosts``.

    Args:
        base_dir: Chain base directory, created if missing
        hosts: Hosts in validator slot order
        validator_set_dir: Directory holding ``validator_set.json`` and one
            ``<id>/priv_validator.json`` per validator
        app_script: Local script to use as the app service's ``init.sh``

    Returns:
        The chain config that was written

    Raises:
        ChainConfigError: If the validator set is unreadable or its size
            does not match the host count
        PersistenceError: If a file cannot be written
    """
    if app_script is not None:
        try:
            with open(app_script, "r") as f:
                app_body = f.read()
        except OSError as e:
            raise ChainConfigError(f"Cannot read app script {app_script}: {e}") from e
    else:
        app_body = SAMPLE_APP_SCRIPT

    valset = None
    if validator_set_dir:
        valset = load_validator_set(validator_set_dir)
        if len(valset.validators) != len(hosts):
            raise ChainConfigError(
                f"Validator set size must match number of machines. "
                f"Got {len(valset.validators)} validators, {len(hosts)} machines"
            )

    try:
        for name, body in (("data", SAMPLE_DATA_SCRIPT), ("app", app_body), ("core", SAMPLE_CORE_SCRIPT)):
            _ensure_dir(os.path.join(base_dir, name))
            _write_script(os.path.join(base_dir, name, "init.sh"), body)

        for host in hosts:
            _ensure_dir(os.path.join(base_dir, host, "core"))

        if valset is not None:
            for host, val in zip(hosts, valset.validators):
                src = os.path.join(validator_set_dir, val.id, PRIV_VALIDATOR_FILE)
                shutil.copyfile(src, os.path.join(base_dir, host, "core", PRIV_VALIDATOR_FILE))
    except OSError as e:
        raise PersistenceError(f"Failed to initialise {base_dir}: {e}") from e

    if valset is not None:
        val_set_id = os.path.basename(os.path.normpath(validator_set_dir))
        validators = [Validator(id=v.id, pub_key=v.pub_key) for v in valset.validators]
    else:
        val_set_id = VALSET_ANON
        validators = [Validator(id=host) for host in hosts]

    config = NetworkConfiguration(
        val_set_id=val_set_id,
        validators=[ValidatorSlot(index=i, validator=v) for i, v in enumerate(validators)],
    )
    ChainConfigStore(base_dir).save(config)
    logger.success(f"Successfully initialized {len(hosts)} node directories")
    return config
