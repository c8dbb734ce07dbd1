import pytest
import yaml
from local_registry import utils
from local_registry.config import RegistryConfig
from tests.utils.mock_helpers import FakeCommandRunner, make_port_probe


def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests requiring podman, openssl and htpasswd"
    )
    config.addinivalue_line(
        "markers", "e2e: marks tests as end-to-end CLI tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    """Keep the caller's registry variables and debug state out of the tests"""
    for name in ('PODMAN', 'DEBUG', 'PODMAN_REGISTRY_IMAGE', 'PODMAN_REGISTRY_USER',
                 'PODMAN_REGISTRY_PASS', 'PODMAN_REGISTRY_PORT'):
        monkeypatch.delenv(name, raising=False)
    utils.set_debug(False)
    yield
    utils.set_debug(False)


@pytest.fixture
def registry_tmpdir(tmp_path, monkeypatch):
    """Workdirs land here; TMPDIR is pointed at it so the CLI agrees"""
    base = tmp_path / "tmp"
    base.mkdir()
    monkeypatch.setenv('TMPDIR', str(base))
    monkeypatch.setattr('tempfile.tempdir', None)
    return base


@pytest.fixture
def sample_config(registry_tmpdir):
    """Configuration with an explicit port and credentials"""
    return RegistryConfig(
        image='quay.io/libpod/registry:2.8.2',
        user='testuser',
        password='testpassword',
        port=5123,
        runtime='podman',
        tmpdir=str(registry_tmpdir),
    )


@pytest.fixture
def fake_commands(monkeypatch):
    """Replace subprocess.run; set .failures / .outputs before use"""
    runner = FakeCommandRunner()
    monkeypatch.setattr('subprocess.run', runner)
    return runner


@pytest.fixture
def no_sleep(monkeypatch):
    sleeps = []
    monkeypatch.setattr('local_registry.lifecycle.time.sleep', sleeps.append)
    return sleeps


@pytest.fixture
def registry_port_probe(monkeypatch):
    """check_port_open replacement: the started registry answers immediately"""
    probe = make_port_probe(opens_after={5123: 0})
    monkeypatch.setattr('local_registry.lifecycle.check_port_open', probe)
    return probe


@pytest.fixture
def temp_config_file(tmp_path):
    """Create a temporary YAML config file"""
    data = {
        'registry': {
            'image': 'localhost/custom/registry:latest',
            'runtime': '/usr/local/bin/podman',
            'port_range': [6000, 6010],
            'pull_attempts': 5,
            'readiness_timeout': 10,
        },
        'tls': {
            'days': 7,
            'bits': 2048,
        },
    }
    path = tmp_path / "registry.yml"
    path.write_text(yaml.dump(data))
    return str(path)
