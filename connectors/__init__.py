"""Remote host connectors package"""
from .ssh_executor import CommandExecutor, OpenSSHExecutor, TransportError

__all__ = ['CommandExecutor', 'OpenSSHExecutor', 'TransportError']
