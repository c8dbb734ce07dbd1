import click
from .utils import log_error, format_command


class RegistryError(click.ClickException):
    """Base class for every terminal failure; click exits with status 1"""
    exit_code = 1

    def show(self, file=None):
        log_error(self.format_message())


class UsageError(RegistryError):
    pass


class PortRequiredError(UsageError):
    def __init__(self, action):
        super().__init__(f"'{action}' requires a port: use -P PORT or set PODMAN_REGISTRY_PORT")
        self.action = action


class ConfigError(RegistryError):
    pass


class WorkdirExistsError(RegistryError):
    def __init__(self, path):
        super().__init__(f"Directory exists: {path} (another registry may be using this port)")
        self.path = path


class WorkdirMissingError(RegistryError):
    def __init__(self, path):
        super().__init__(f"Directory does not exist: {path} (no registry instance on this port?)")
        self.path = path


class NoFreePortError(RegistryError):
    def __init__(self, low, high):
        super().__init__(f"No free port found in range {low}-{high}")
        self.low = low
        self.high = high


class ReadinessTimeoutError(RegistryError):
    def __init__(self, port, timeout):
        super().__init__(f"Timed out waiting for registry on port {port} after {timeout}s")
        self.port = port
        self.timeout = timeout


class CommandFailedError(RegistryError):
    def __init__(self, cmd, returncode, output=""):
        self.cmd = list(cmd)
        self.returncode = returncode
        self.output = output
        message = f"Command failed (exit {returncode}): {format_command(self.cmd)}"
        if output:
            message += f"\n{output}"
        super().__init__(message)
