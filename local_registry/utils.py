import os
import time
import socket
import string
import secrets
import subprocess
from typing import Optional, Tuple, List, Any, Sequence
import colorama
import click

# Initialize colorama for cross-platform colored output
colorama.init(autoreset=True)

# Set from the CLI --debug flag; DEBUG in the environment also enables it
_debug_enabled = False

ALPHANUMERIC = string.ascii_letters + string.digits


def set_debug(enabled: bool) -> None:
    global _debug_enabled
    _debug_enabled = bool(enabled)


def debug_enabled() -> bool:
    return _debug_enabled or os.getenv('DEBUG', '').lower() in ('1', 'true', 'yes')


# Logging functions with colors. Everything goes to stderr: stdout of `start`
# is evaluated by the calling shell and must only carry the variable assignments.
def _log(level: str, message: str, color: str) -> None:
    timestamp = time.strftime("%Y-%m-%d %H:%M:%S")
    formatted_msg = f"{color}[{timestamp}] [{level}] {message}{colorama.Style.RESET_ALL}"
    click.echo(formatted_msg, err=True)


def log_message(message: str, details: Optional[str] = None) -> None:
    """
    Log an informational message

    Usage:
        log_message("Pulling image")
        log_message("Command output:", details=output)
    """
    if details:
        message = f"{message} {colorama.Fore.MAGENTA}{details}"
    _log("INFO", message, colorama.Fore.CYAN)


def log_error(message: str, details: Optional[str] = None) -> None:
    """Log an error message with consistent formatting"""
    if details:
        message = f"{message}\n{details}"
    _log("ERROR", message, colorama.Fore.RED)


def log_success(message: str) -> None:
    """Log a success message with consistent formatting"""
    _log("SUCCESS", message, colorama.Fore.GREEN)


def log_warning(message: str) -> None:
    """Log a warning message with consistent formatting"""
    _log("WARNING", message, colorama.Fore.YELLOW)


def log_debug(message: str) -> None:
    """Log a debug message (only shown with --debug or DEBUG set)"""
    if not debug_enabled():
        return
    _log("DEBUG", message, colorama.Fore.MAGENTA)


# System utilities
def run_local_command(
    command: Sequence[str],
    capture_output: bool = True,
    timeout: Optional[int] = 300
) -> Tuple[str, str, int]:
    """
    Run a local command without a shell

    Args:
        command: Argument vector to run
        capture_output: Capture stdout/stderr; when False output goes
            straight to the caller's terminal
        timeout: Command timeout in seconds

    Returns:
        tuple: (stdout, stderr, exit_code)
    """
    argv = [str(arg) for arg in command]
    log_debug(f"Running local command: {' '.join(argv)}")

    kwargs = {}
    if capture_output:
        kwargs['stdout'] = subprocess.PIPE
        kwargs['stderr'] = subprocess.PIPE

    try:
        result = subprocess.run(
            argv,
            text=True,
            timeout=timeout,
            **kwargs
        )
    except subprocess.TimeoutExpired:
        log_error(f"Local command timed out: {' '.join(argv)}")
        return "", "Command timed out", -1
    except OSError as e:
        # Missing executable, permission denied
        log_debug(f"Local command could not be started: {e}")
        return "", str(e), 127

    stdout = result.stdout.strip() if result.stdout else ""
    stderr = result.stderr.strip() if result.stderr else ""
    exit_code = result.returncode

    log_debug(f"Local command exit code: {exit_code}")
    if stdout:
        log_debug(f"Local command stdout: {stdout}")
    if stderr and exit_code != 0:
        log_debug(f"Local command stderr: {stderr}")

    return stdout, stderr, exit_code


# Network utilities
def check_port_open(hostname: str, port: int, timeout: float = 1) -> bool:
    """
    Check if a port is accepting TCP connections on a host

    Args:
        hostname: Target hostname or IP
        port: Port number
        timeout: Connection timeout

    Returns:
        bool: True if port is open
    """
    try:
        with socket.create_connection((hostname, port), timeout=timeout):
            return True
    except (socket.timeout, socket.error):
        return False


def validate_port(port: Any) -> bool:
    """Validate port number"""
    try:
        port_int = int(port)
        return 1 <= port_int <= 65535
    except (ValueError, TypeError):
        return False


def random_string(length: int) -> str:
    """Random alphanumeric string drawn from the OS randomness source"""
    return ''.join(secrets.choice(ALPHANUMERIC) for _ in range(length))


# Retry utilities
def retry_operation(
    operation,
    max_attempts: int = 3,
    delay: float = 1.0,
    backoff_factor: float = 2.0,
    exceptions: Tuple = (Exception,),
    quiet: bool = False
) -> Any:
    """
    Retry an operation, optionally with exponential backoff

    Args:
        operation: Function to retry
        max_attempts: Maximum attempts
        delay: Initial delay between retries (0 retries immediately)
        backoff_factor: Delay multiplier for each retry
        exceptions: Exceptions to catch and retry on
        quiet: Only log retries at debug level

    Returns:
        Result of successful operation

    Raises:
        Last exception if all retries fail
    """
    last_exception = None

    for attempt in range(max_attempts):
        try:
            return operation()
        except exceptions as e:
            last_exception = e
            if attempt == max_attempts - 1:
                break

            wait_time = delay * (backoff_factor ** attempt)
            notice = f"Operation failed (attempt {attempt + 1}/{max_attempts}), retrying in {wait_time:.1f}s: {e}"
            if quiet:
                log_debug(notice)
            else:
                log_warning(notice)
            if wait_time > 0:
                time.sleep(wait_time)

    raise last_exception


def format_command(command: List[str]) -> str:
    return ' '.join(str(arg) for arg in command)
