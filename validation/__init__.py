"""Configuration and command validation package"""
from .validators import (
    ValidationError,
    CommandRejected,
    validate_hostname,
    validate_username,
    validate_file_path,
    validate_keyword,
    validate_port,
    validate_filters,
    validate_target,
    validate_command,
)

__all__ = [
    'ValidationError', 'CommandRejected',
    'validate_hostname', 'validate_username', 'validate_file_path',
    'validate_keyword', 'validate_port', 'validate_filters',
    'validate_target', 'validate_command',
]
