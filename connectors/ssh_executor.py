"""
SSH Executor
Runs commands on remote servers through the system OpenSSH client
"""

from __future__ import annotations

import logging
import os
import subprocess
from abc import ABC, abstractmethod
from typing import List, Optional

from validation.validators import (
    ValidationError,
    validate_command,
    validate_file_path,
    validate_hostname,
    validate_port,
    validate_username,
)

logger = logging.getLogger(__name__)


class TransportError(RuntimeError):
    """The ssh client could not be started, timed out or exited non-zero"""

    def __init__(self, message: str, returncode: Optional[int] = None, stderr: str = ''):
        if stderr:
            message = f"{message} - stderr: {stderr.strip()}"
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class CommandExecutor(ABC):
    """Runs a single command on a remote host and returns its stdout"""

    @abstractmethod
    def execute(self, user: str, host: str, port: int, key_path: str,
                proxy_jump: str, command: str, timeout: float = None) -> str:
        raise NotImplementedError


def expand_key_path(key_path: str) -> str:
    """Expand environment references, then a leading ~/"""
    key_path = os.path.expandvars(key_path)
    if key_path.startswith('~/'):
        key_path = os.path.join(os.path.expanduser('~'), key_path[2:])
    return key_path


def validate_ssh_params(user: str, host: str, port: int, key_path: str, proxy_jump: str) -> None:
    """Check connection parameters before anything is spawned"""
    validate_username(user, 'user')
    if user.startswith('-'):
        # Would be read as an option by ssh
        raise ValidationError('user', "cannot start with '-'")
    validate_hostname(host, 'host')
    validate_port(port, 'port')
    validate_file_path(key_path, 'ssh_key')
    if proxy_jump:
        validate_hostname(proxy_jump, 'proxy_jump')


class OpenSSHExecutor(CommandExecutor):
    """Executes commands via the `ssh` binary with a hardened option set"""

    def __init__(self, ssh_binary: str = 'ssh', connect_timeout: int = 10,
                 server_alive_interval: int = 30, server_alive_count_max: int = 3,
                 command_timeout: float = 60):
        self.ssh_binary = ssh_binary
        self.connect_timeout = connect_timeout
        self.server_alive_interval = server_alive_interval
        self.server_alive_count_max = server_alive_count_max
        self.command_timeout = command_timeout

    def build_args(self, user: str, host: str, port: int, key_path: str,
                   proxy_jump: str, command: str) -> List[str]:
        """Build the ssh argument vector. Inputs must already be validated."""
        args = [
            '-i', expand_key_path(key_path),
            '-p', str(port),
            f"{user}@{host}",
            '-o', f"ConnectTimeout={self.connect_timeout}",
            '-o', f"ServerAliveInterval={self.server_alive_interval}",
            '-o', f"ServerAliveCountMax={self.server_alive_count_max}",
            '-o', 'StrictHostKeyChecking=yes',
            '-o', 'BatchMode=yes',
        ]
        if proxy_jump:
            args = ['-J', f"{user}@{proxy_jump}"] + args
        return [self.ssh_binary] + args + [command]

    def execute(self, user: str, host: str, port: int, key_path: str,
                proxy_jump: str, command: str, timeout: float = None) -> str:
        """Run `command` on `user@host` and return stdout unaltered"""
        validate_ssh_params(user, host, port, key_path, proxy_jump)
        validate_command(command)

        if timeout is None:
            timeout = self.command_timeout

        args = self.build_args(user, host, port, key_path, proxy_jump, command)
        logger.debug(f"Running on {user}@{host}:{port}: {command[:60]}")

        try:
            result = subprocess.run(
                args,
                stdin=subprocess.DEVNULL,
                capture_output=True,
                encoding='utf-8',
                # remote argv may hold non-UTF-8 bytes
                errors='replace',
                timeout=timeout,
                check=False
            )
        except subprocess.TimeoutExpired as e:
            stderr = e.stderr or ''
            if isinstance(stderr, bytes):
                stderr = stderr.decode('utf-8', errors='replace')
            raise TransportError(f"ssh to {host} timed out after {timeout}s", stderr=stderr) from e
        except OSError as e:
            raise TransportError(f"failed to start {self.ssh_binary}: {e}") from e

        if result.returncode != 0:
            raise TransportError(
                f"ssh to {host} exited with status {result.returncode}",
                returncode=result.returncode,
                stderr=result.stderr
            )
        return result.stdout
