# services/validators.py
import re

ROBLOX_USERNAME_RE = re.compile(r'^[A-Za-z0-9_]{3,20}$')
DISCORD_USERNAME_RE = re.compile(r'^[A-Za-z0-9_.]{2,32}$')


def _matches(pattern, value):
    if not isinstance(value, str):
        return False
    # fullmatch so a trailing newline does not slip past "$"
    return pattern.fullmatch(value) is not None


def validate_roblox_username(username):
    """Roblox usernames: 3-20 letters, digits or underscores."""
    return _matches(ROBLOX_USERNAME_RE, username)


def validate_discord_username(username):
    """Discord usernames: 2-32 letters, digits, underscores or dots."""
    return _matches(DISCORD_USERNAME_RE, username)
