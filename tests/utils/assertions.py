import re


def assert_command_executed(runner, command_pattern):
    """Assert that a command matching the pattern was executed"""
    executed_commands = [' '.join(argv) for argv in runner.commands_executed]
    pattern = re.compile(command_pattern)

    matching_commands = [cmd for cmd in executed_commands if pattern.search(cmd)]

    assert matching_commands, f"Command pattern '{command_pattern}' not found in executed commands: {executed_commands}"


def assert_command_not_executed(runner, command_pattern):
    executed_commands = [' '.join(argv) for argv in runner.commands_executed]
    pattern = re.compile(command_pattern)

    matching_commands = [cmd for cmd in executed_commands if pattern.search(cmd)]

    assert not matching_commands, f"Command pattern '{command_pattern}' unexpectedly executed: {matching_commands}"


def assert_shell_assignments(output):
    """Parse KEY="VALUE" lines, asserting stdout carries nothing else"""
    values = {}
    for line in output.splitlines():
        match = re.fullmatch(r'(PODMAN_REGISTRY_[A-Z]+)="(.*)"', line)
        assert match, f"Unexpected stdout line: {line!r}"
        values[match.group(1)] = match.group(2)
    assert list(values) == [
        'PODMAN_REGISTRY_IMAGE',
        'PODMAN_REGISTRY_PORT',
        'PODMAN_REGISTRY_USER',
        'PODMAN_REGISTRY_PASS',
    ]
    return values
