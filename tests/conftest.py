"""
Pytest configuration and fixtures for sysmesh tests.
"""

import os
import sys

import pytest

# Add parent directory to path for imports
PARENT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PARENT_DIR not in sys.path:
    sys.path.insert(0, PARENT_DIR)

from collectors.models import ProcessFilterSpec, RemoteTarget  # noqa: E402
from connectors.ssh_executor import CommandExecutor  # noqa: E402


SAMPLE_PS_OUTPUT = """\
 1234 root      2.5  1.1 Ss   Mon Jan  1 00:00:00 2024 /usr/sbin/sshd -D
 2345 www-data  0.3  2.4 S    Mon Jan  1 00:00:05 2024 nginx: worker process
 3456 deploy   12.0  8.5 Sl   Tue Jan  2 10:15:00 2024 /usr/bin/python3 app.py --port 8000
"""

SAMPLE_STATS_OUTPUT = "12.3\n2048 8192 50.5 100.0"


class FakeExecutor(CommandExecutor):
    """Returns canned output keyed by command prefix and records every call."""

    def __init__(self, responses=None, error=None):
        self.responses = responses or {}
        self.error = error
        self.calls = []

    def execute(self, user, host, port, key_path, proxy_jump, command, timeout=None):
        self.calls.append({
            'user': user, 'host': host, 'port': port, 'key_path': key_path,
            'proxy_jump': proxy_jump, 'command': command, 'timeout': timeout,
        })
        if self.error is not None:
            raise self.error
        for prefix, output in self.responses.items():
            if command.startswith(prefix):
                return output
        return ''


@pytest.fixture
def sample_filters():
    """Filter on the sshd keyword only."""
    return ProcessFilterSpec(keywords=['sshd'])


@pytest.fixture
def sample_target(sample_filters):
    """A valid remote target."""
    return RemoteTarget(
        host='web1.example.com',
        user='deploy',
        port=2222,
        ssh_key_path='~/.ssh/id_ed25519',
        process_filters=sample_filters,
    )


@pytest.fixture
def sample_ps_output():
    return SAMPLE_PS_OUTPUT


@pytest.fixture
def sample_stats_output():
    return SAMPLE_STATS_OUTPUT


@pytest.fixture
def fake_executor():
    """Fake executor answering the ps and system stats probes."""
    return FakeExecutor({
        'ps ': SAMPLE_PS_OUTPUT,
        'top ': SAMPLE_STATS_OUTPUT,
    })


@pytest.fixture
def write_config(tmp_path):
    """Write YAML text to a temporary config file and return its path."""
    def _write(text, name='config.yaml'):
        path = tmp_path / name
        path.write_text(text)
        return str(path)
    return _write


FAKE_SSH_SCRIPT = b"""#!/bin/sh
for last; do :; done
case "$last" in
  ps*)
    case "$*" in
      *@bad*) printf '1 root 0.0 0.0 S Mon Jan 1 00:00:00 2024 sshd \\377\\376\\n' ;;
      *) printf '1 root 0.0 0.0 S Mon Jan 1 00:00:00 2024 sshd -D\\n' ;;
    esac ;;
  *) printf '12.3\\n2048 8192 50.5 100.0\\n' ;;
esac
"""


@pytest.fixture
def fake_ssh(tmp_path):
    """Executable stand-in for ssh; host `bad` emits non-UTF-8 argv bytes."""
    if sys.platform == 'win32':
        pytest.skip('needs a POSIX shell')
    script = tmp_path / 'ssh'
    script.write_bytes(FAKE_SSH_SCRIPT)
    script.chmod(0o755)
    return str(script)
