"""
Input Validators
Checks untrusted configuration values before they reach command construction
or the ssh client. All functions are pure: they return the value unchanged or
raise ValidationError.
"""

import os
import re

MAX_HOSTNAME_LENGTH = 253
MAX_USERNAME_LENGTH = 32
MAX_PATH_LENGTH = 4096
MAX_KEYWORD_LENGTH = 100

HOSTNAME_RE = re.compile(
    r'([a-zA-Z0-9]([a-zA-Z0-9\-]{0,61}[a-zA-Z0-9])?\.)*'
    r'[a-zA-Z0-9]([a-zA-Z0-9\-]{0,61}[a-zA-Z0-9])?'
)
IPV4_RE = re.compile(r'(?:[0-9]{1,3}\.){3}[0-9]{1,3}')
USERNAME_RE = re.compile(r'[a-zA-Z0-9_-]+')

KEYWORD_FORBIDDEN_CHARS = frozenset(';&|$`\n\r')
PATH_FORBIDDEN_CHARS = frozenset('\x00\n\r')

# Substitution markers and chaining-into-a-dangerous-binary sequences
DANGEROUS_COMMAND_PATTERNS = [
    '$(', '`', '\n', '\r',
    ';rm', ';wget', ';curl', ';sh', ';bash',
    '&&rm', '&&wget', '&&curl', '&&sh', '&&bash',
    '||rm', '||wget', '||curl', '||sh', '||bash',
]


class ValidationError(ValueError):
    """A configuration value is malformed or unsafe"""

    def __init__(self, field: str, message: str):
        super().__init__(f"invalid {field}: {message}")
        self.field = field
        self.reason = message


class CommandRejected(ValueError):
    """A command tripped the pre-execution safety check"""

    def __init__(self, command: str, pattern: str):
        super().__init__(f"command contains dangerous pattern: {pattern!r}")
        self.command = command
        self.pattern = pattern


def _require_text(value, field: str) -> str:
    if not isinstance(value, str):
        raise ValidationError(field, f"expected a string, got {type(value).__name__}")
    if not value:
        raise ValidationError(field, "cannot be empty")
    return value


def validate_hostname(host, field: str = 'hostname') -> str:
    """Validate an RFC 1123 hostname or dotted-quad IPv4 address.

    Purely syntactic: nothing is resolved.
    """
    host = _require_text(host, field)
    if len(host) > MAX_HOSTNAME_LENGTH:
        raise ValidationError(field, f"too long (max {MAX_HOSTNAME_LENGTH} characters)")
    if not HOSTNAME_RE.fullmatch(host) and not IPV4_RE.fullmatch(host):
        raise ValidationError(field, "invalid hostname or IP address format")
    return host


def validate_username(user, field: str = 'username') -> str:
    """Validate a login name (alphanumeric, underscore, dash)"""
    user = _require_text(user, field)
    if len(user) > MAX_USERNAME_LENGTH:
        raise ValidationError(field, f"too long (max {MAX_USERNAME_LENGTH} characters)")
    if not USERNAME_RE.fullmatch(user):
        raise ValidationError(field, "only alphanumeric, underscore and dash allowed")
    return user


def validate_file_path(path, field: str = 'file path') -> str:
    """Validate a local file path against traversal and control bytes"""
    path = _require_text(path, field)
    if len(path) > MAX_PATH_LENGTH:
        raise ValidationError(field, f"too long (max {MAX_PATH_LENGTH} characters)")
    if any(c in PATH_FORBIDDEN_CHARS for c in path):
        raise ValidationError(field, "contains null byte or line break")
    if '..' in os.path.normpath(path):
        raise ValidationError(field, "path traversal not allowed")
    return path


def validate_keyword(keyword, field: str = 'keyword') -> str:
    """Validate a process filter keyword"""
    keyword = _require_text(keyword, field)
    if len(keyword) > MAX_KEYWORD_LENGTH:
        raise ValidationError(field, f"too long (max {MAX_KEYWORD_LENGTH} characters)")
    bad = sorted(c for c in set(keyword) if c in KEYWORD_FORBIDDEN_CHARS)
    if bad:
        raise ValidationError(field, f"contains shell metacharacters {bad!r}")
    return keyword


def validate_port(port, field: str = 'port') -> int:
    """Validate a TCP port number"""
    if isinstance(port, bool) or not isinstance(port, int):
        raise ValidationError(field, f"expected an integer, got {type(port).__name__}")
    if not 1 <= port <= 65535:
        raise ValidationError(field, "must be between 1 and 65535")
    return port


def validate_filters(filters, field: str = 'process_filters'):
    """Validate every entry of a ProcessFilterSpec"""
    for keyword in sorted(filters.keywords):
        validate_keyword(keyword, f"{field}.keywords")
    for user in sorted(filters.users):
        validate_username(user, f"{field}.users")
    for group in sorted(filters.groups):
        # Group names follow the same syntax as user names
        validate_username(group, f"{field}.groups")
    return filters


def validate_target(target):
    """Validate all security-sensitive fields of a RemoteTarget"""
    validate_hostname(target.host, 'host')
    validate_username(target.user, 'user')
    validate_port(target.port, 'port')
    validate_file_path(target.ssh_key_path, 'ssh_key')
    if target.proxy_jump:
        validate_hostname(target.proxy_jump, 'proxy_jump')
    validate_filters(target.process_filters)
    return target


def validate_command(command) -> str:
    """Reject commands carrying substitution, line breaks or chained payloads.

    Runs immediately before execution, independently of how the command was
    built.
    """
    if not isinstance(command, str) or not command:
        raise CommandRejected(str(command), '<empty>')

    lowered = command.lower()
    for pattern in DANGEROUS_COMMAND_PATTERNS:
        if pattern in lowered:
            raise CommandRejected(command, pattern)
    return command
