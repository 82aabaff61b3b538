"""
Environment variable loading utility.

This module loads ``KEY=VALUE`` files (optionally prefixed with ``export``)
into the process environment without overriding variables that are already set.
"""
import os
import logging

logger = logging.getLogger(__name__)


def parse_env_line(line):
    """
    Parse one line of an env file.

    Returns:
        (key, value) tuple, or None for blank lines, comments and malformed lines.
    """
    line = line.strip()
    if not line or line.startswith('#'):
        return None
    if line.startswith('export '):
        line = line[len('export '):].lstrip()
    if '=' not in line:
        return None

    key, value = line.split('=', 1)
    key = key.strip()
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
        value = value[1:-1]
    if not key:
        return None
    return key, value


def load_env_from_file(file_path):
    """
    Load environment variables from a file.

    Args:
        file_path: Path to the environment variable file.

    Returns:
        True if file was loaded successfully, False otherwise.
    """
    if not os.path.exists(file_path):
        logger.debug(f"Environment file not found: {file_path}")
        return False

    try:
        with open(file_path, 'r') as f:
            for line in f:
                parsed = parse_env_line(line)
                if parsed is None:
                    continue
                key, value = parsed
                os.environ.setdefault(key, value)

        logger.info(f"Loaded environment variables from {file_path}")
        return True
    except OSError as e:
        logger.error(f"Error loading environment variables from {file_path}: {str(e)}")
        return False
