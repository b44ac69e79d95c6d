"""
Error Types

Run-level errors (parse, chain config read/write) abort a command.
Stage-level errors are wrapped in StageError and stay inside the failing
host's outcome.
"""

from typing import Optional


class DeployerError(Exception):
    """Base class for all deployer errors"""


class ParseError(DeployerError):
    """Malformed host range expression"""


class DuplicateHostError(ParseError):
    """The same host name appears twice in a range expression"""

    def __init__(self, host: str):
        self.host = host
        super().__init__(f"Duplicate machine {host}")


class RemoteCommandError(DeployerError):
    """A remote command, copy or poll failed"""

    def __init__(self, message: str, stdout: str = "", stderr: str = ""):
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(message)


class PortMappingMissing(RemoteCommandError):
    """A well-known container port has no published host port"""

    def __init__(self, host: str, port: int):
        self.host = host
        self.port = port
        super().__init__(f"No port map found for port {port} on machine {host}")


class IdentityMismatch(DeployerError):
    """The status endpoint did not confirm the discovered validator key"""


class PollTimeout(DeployerError):
    """A readiness poll ran past its deadline"""


class ProvisionTimeout(DeployerError):
    """A host pipeline ran past its deadline"""


class ChainConfigError(DeployerError):
    """The chain configuration could not be read or does not fit the run"""


class PersistenceError(DeployerError):
    """The chain configuration could not be written"""


class StageError(DeployerError):
    """A pipeline stage failed on one host"""

    def __init__(self, host: str, stage: Optional[str], cause: BaseException):
        self.host = host
        self.stage = stage
        self.cause = cause
        where = f" during {stage}" if stage else ""
        super().__init__(f"[{host}]{where}: {cause}")
