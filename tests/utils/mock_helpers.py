import subprocess

RUNTIME_GLOBAL_OPTIONS = ('--root', '--runroot')


def command_key(argv):
    """'openssl'/'htpasswd' for tools, else the runtime subcommand (pull, run, stop, ...)"""
    if argv[0] in ('openssl', 'htpasswd'):
        return argv[0]
    args = list(argv[1:])
    while args and args[0] in RUNTIME_GLOBAL_OPTIONS:
        args = args[2:]
    return args[0] if args else argv[0]


class FakeCommandRunner:
    """Stand-in for subprocess.run that records every argv it is given"""

    def __init__(self, failures=None, outputs=None):
        # key -> list of exit codes, consumed one per call; later calls succeed
        self.failures = {key: list(codes) for key, codes in (failures or {}).items()}
        self.outputs = outputs or {}
        self.commands_executed = []
        self.calls = []

    def __call__(self, argv, **kwargs):
        argv = list(argv)
        self.commands_executed.append(argv)
        self.calls.append((argv, kwargs))
        key = command_key(argv)

        exit_code = 0
        pending = self.failures.get(key)
        if pending:
            exit_code = pending.pop(0)

        if exit_code != 0:
            stdout, stderr = "", f"{key} failed: simulated error"
        elif key in self.outputs:
            stdout, stderr = self.outputs[key], ""
        elif key == 'htpasswd':
            stdout, stderr = f"{argv[2]}:$2y$05$mockedbcrypthashvalue", ""
        else:
            stdout, stderr = "", ""

        if kwargs.get('stdout') is None:
            # Output was not captured
            stdout = stderr = None
        return subprocess.CompletedProcess(argv, exit_code, stdout, stderr)

    def keys(self):
        return [command_key(argv) for argv in self.commands_executed]

    def count(self, key):
        return self.keys().count(key)


def make_port_probe(open_ports=(), opens_after=None):
    """
    Fake check_port_open: ports in open_ports always answer; opens_after maps
    port -> number of failed probes before it starts answering.
    """
    open_ports = set(open_ports)
    remaining = dict(opens_after or {})
    probed = []

    def probe(hostname, port, timeout=1):
        probed.append(port)
        if port in open_ports:
            return True
        if port in remaining:
            if remaining[port] <= 0:
                return True
            remaining[port] -= 1
        return False

    probe.probed = probed
    return probe
