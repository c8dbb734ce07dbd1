import os
import shutil
from .exceptions import (
    CommandFailedError,
    RegistryError,
    WorkdirExistsError,
    WorkdirMissingError,
)
from .utils import log_debug, log_warning, run_local_command

WORKDIR_PREFIX = 'podman-registry-'
RUNTIME_RECORD = 'PODMAN'


def workdir_path(port, tmpdir):
    """Deterministic per-port instance directory"""
    return os.path.join(tmpdir, f"{WORKDIR_PREFIX}{int(port)}")


class Workdir:
    """
    On-disk handle for one registry instance

    Layout:
        PODMAN                     runtime invocation used to create the instance
        root/, runroot/            isolated container storage
        auth/domain.crt, .key      self-signed TLS material
        auth/htpasswd              hashed credentials (mounted in the container)
        auth/htpasswd-plaintext    user:password, for debugging
        log                        output of the last failed command
    """

    def __init__(self, port, path, runtime):
        self.port = int(port)
        self.path = path
        self.runtime = runtime

    @classmethod
    def create(cls, port, runtime, tmpdir):
        """
        Allocate the directory for a new instance

        Directory creation is the mutual-exclusion check: if it already exists
        another instance owns the port and WorkdirExistsError is raised.
        """
        path = workdir_path(port, tmpdir)
        try:
            os.mkdir(path, 0o700)
        except FileExistsError:
            raise WorkdirExistsError(path)
        except OSError as e:
            raise RegistryError(f"Cannot create {path}: {e}")

        workdir = cls(port, path, runtime)
        try:
            os.mkdir(workdir.auth_dir)
            with open(os.path.join(path, RUNTIME_RECORD), 'w') as f:
                f.write(runtime + '\n')
        except OSError as e:
            shutil.rmtree(path, ignore_errors=True)
            raise RegistryError(f"Cannot initialize {path}: {e}")
        log_debug(f"Created workdir {path}")
        return workdir

    @classmethod
    def load(cls, port, default_runtime, tmpdir):
        """
        Re-open an existing instance, using the runtime recorded at creation
        rather than whatever the current environment configures.
        """
        path = workdir_path(port, tmpdir)
        if not os.path.isdir(path):
            raise WorkdirMissingError(path)

        runtime = default_runtime
        try:
            with open(os.path.join(path, RUNTIME_RECORD), 'r') as f:
                saved = f.read().strip()
            if saved:
                runtime = saved
        except FileNotFoundError:
            log_warning(f"No saved runtime in {path}, using '{default_runtime}'")

        log_debug(f"Loaded workdir {path} (runtime: {runtime})")
        return cls(port, path, runtime)

    @property
    def root(self):
        return os.path.join(self.path, 'root')

    @property
    def runroot(self):
        return os.path.join(self.path, 'runroot')

    @property
    def auth_dir(self):
        return os.path.join(self.path, 'auth')

    @property
    def cert_path(self):
        return os.path.join(self.auth_dir, 'domain.crt')

    @property
    def key_path(self):
        return os.path.join(self.auth_dir, 'domain.key')

    @property
    def htpasswd_path(self):
        return os.path.join(self.auth_dir, 'htpasswd')

    @property
    def plaintext_path(self):
        return os.path.join(self.auth_dir, 'htpasswd-plaintext')

    @property
    def log_path(self):
        return os.path.join(self.path, 'log')

    def exists(self):
        return os.path.isdir(self.path)

    def record_log(self, output):
        """Keep the combined output of the last failed command"""
        if not self.exists():
            return
        with open(self.log_path, 'w') as f:
            f.write(output)
            if output and not output.endswith('\n'):
                f.write('\n')

    def must_pass(self, command, timeout=300):
        """
        Run a command that has to succeed. On failure its output is kept in
        the log file and CommandFailedError is raised. Returns stdout.
        """
        stdout, stderr, exit_code = run_local_command(command, timeout=timeout)
        if exit_code != 0:
            output = '\n'.join(part for part in (stdout, stderr) if part)
            self.record_log(output)
            raise CommandFailedError(command, exit_code, output)
        return stdout

    def remove(self):
        shutil.rmtree(self.path)
        log_debug(f"Removed workdir {self.path}")

    def __repr__(self):
        return f"Workdir(port={self.port}, path={self.path!r}, runtime={self.runtime!r})"
