"""
Remote Command Builder
Fixed command templates run on monitored hosts
"""

from validation.validators import validate_username

PS_FIELDS = 'pid,user,%cpu,%mem,stat,lstart,args'

# Prints one line: cpu% mem-used-MB mem-total-MB disk-used-GB disk-total-GB
SYSTEM_STATS_COMMAND = (
    "top -bn1 | grep \"Cpu(s)\" | awk '{print $2}' | sed 's/%us,//'; "
    "free -m | awk 'NR==2{printf \"%.0f %.0f\", $3,$2}'; "
    "df -h / | awk 'NR==2{gsub(/[^0-9.]/, \"\", $3); gsub(/[^0-9.]/, \"\", $2); "
    "printf \" %.1f %.1f\", $3, $2}'"
)


def build_ps_command(user: str) -> str:
    """Build the process listing command for a single user"""
    validate_username(user, 'user')
    return f"ps -u {user} -o {PS_FIELDS} --no-headers"


def build_system_stats_command() -> str:
    """Return the system stats probe; it takes no parameters"""
    return SYSTEM_STATS_COMMAND
