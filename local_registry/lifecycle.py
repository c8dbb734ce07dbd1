"""
Start/stop lifecycle of a throwaway registry instance

start_registry allocates a workdir, provisions image, TLS and credentials,
launches the container and waits for the port. stop_registry, list_containers
and show_logs re-open an existing instance by port.
"""
import time
import random
from typing import Callable, Optional
from .config import RegistryConfig, resolve_credentials
from .credentials import write_credentials
from .exceptions import (
    CommandFailedError,
    NoFreePortError,
    PortRequiredError,
    ReadinessTimeoutError,
    RegistryError,
)
from .runtime import ContainerRuntime
from .tls import generate_certificate
from .utils import (
    check_port_open,
    log_debug,
    log_message,
    log_success,
    log_warning,
    retry_operation,
    run_local_command,
)
from .workdir import Workdir

LOCALHOST = '127.0.0.1'
POLL_INTERVAL = 1


def find_free_port(port_range, probe: Optional[Callable[[str, int], bool]] = None) -> int:
    """
    First port in a shuffled range that nothing is listening on.

    Nothing is reserved between this probe and the container binding the
    port, so two concurrent starts can pick the same one.
    """
    probe = probe or check_port_open
    low, high = port_range
    candidates = list(range(int(low), int(high) + 1))
    random.shuffle(candidates)
    for port in candidates:
        if not probe(LOCALHOST, port):
            log_debug(f"Selected free port {port}")
            return port
    raise NoFreePortError(low, high)


def wait_for_port(port: int, timeout: int, interval: float = POLL_INTERVAL) -> None:
    """Probe the port once per interval, up to `timeout` attempts"""
    for attempt in range(timeout):
        if check_port_open(LOCALHOST, port):
            log_debug(f"Port {port} reachable after {attempt + 1} attempt(s)")
            return
        if attempt < timeout - 1:
            time.sleep(interval)
    raise ReadinessTimeoutError(port, timeout)


def pull_image(workdir: Workdir, runtime: ContainerRuntime, image: str, attempts: int) -> None:
    """Pull with immediate retries; only the last failure is reported"""
    log_message(f"Pulling {image}...")
    retry_operation(
        lambda: workdir.must_pass(runtime.pull(image), timeout=None),
        max_attempts=attempts,
        delay=0,
        exceptions=(CommandFailedError,),
        quiet=True,
    )


def start_registry(config: RegistryConfig) -> RegistryConfig:
    """
    Bring up an authenticated, TLS-enabled registry on 127.0.0.1.

    Returns the config with port, user and password resolved. On any failure
    the partially-built workdir is removed before the error propagates.
    """
    if config.port is None:
        config = config.with_overrides(port=find_free_port(config.port_range))
    config = resolve_credentials(config)

    workdir = Workdir.create(config.port, config.runtime, config.tmpdir)
    try:
        runtime = ContainerRuntime(workdir)

        pull_image(workdir, runtime, config.image, config.pull_attempts)

        log_message("Generating TLS certificate...")
        generate_certificate(workdir, config)

        log_message("Writing htpasswd credentials...")
        write_credentials(workdir, config.user, config.password)

        log_message(f"Starting registry container on port {config.port}...")
        workdir.must_pass(runtime.run_registry(config.image, config.port))

        wait_for_port(config.port, config.readiness_timeout)
    except BaseException:
        cleanup_workdir(workdir)
        raise

    log_success(f"Registry listening on {LOCALHOST}:{config.port}")
    return config


def cleanup_workdir(workdir: Workdir) -> None:
    """
    Best-effort removal after a failed start: remove any container, then the
    storage roots inside the user namespace, then the rest. Problems are
    logged, never raised, so the original failure is what the caller sees.
    """
    if not workdir.exists():
        return
    runtime = ContainerRuntime(workdir)
    for command in (runtime.remove(), runtime.unshare_remove_storage()):
        _, stderr, exit_code = run_local_command(command)
        if exit_code != 0:
            log_debug(f"Cleanup command failed (exit {exit_code}): {stderr}")
    try:
        workdir.remove()
    except OSError as e:
        log_warning(f"Could not remove {workdir.path}: {e}")


def open_instance(config: RegistryConfig, action: str) -> Workdir:
    """Explicit load step before any control operation"""
    if config.port is None:
        raise PortRequiredError(action)
    return Workdir.load(config.port, config.runtime, config.tmpdir)


def stop_registry(config: RegistryConfig) -> None:
    workdir = open_instance(config, 'stop')
    runtime = ContainerRuntime(workdir)

    log_message(f"Stopping registry on port {workdir.port}...")
    _, stderr, exit_code = run_local_command(runtime.stop())
    if exit_code != 0:
        log_warning(f"Stopping container failed (it may already have exited): {stderr}")

    workdir.must_pass(runtime.remove())
    workdir.must_pass(runtime.unshare_remove_storage())
    try:
        workdir.remove()
    except OSError as e:
        raise RegistryError(f"Could not remove {workdir.path}: {e}")
    log_success(f"Registry on port {workdir.port} stopped and removed")


def _passthrough(command) -> None:
    # Output goes straight to the caller's terminal
    _, stderr, exit_code = run_local_command(command, capture_output=False, timeout=None)
    if exit_code != 0:
        raise CommandFailedError(command, exit_code, stderr)


def list_containers(config: RegistryConfig) -> None:
    workdir = open_instance(config, 'ps')
    _passthrough(ContainerRuntime(workdir).ps())


def show_logs(config: RegistryConfig) -> None:
    workdir = open_instance(config, 'logs')
    _passthrough(ContainerRuntime(workdir).logs())

