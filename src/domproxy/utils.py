"""
Utility functions for domproxy.
"""

import os
import re
from typing import Optional

_UNSAFE_KEY_CHARS = re.compile(r"[^a-zA-Z0-9]")


def get_project_root() -> str:
    """
    Get the project root directory (parent of src/domproxy).

    Returns:
        Absolute path to the project root directory
    """
    return os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


def domain_pref_key(domain_name: Optional[str]) -> Optional[str]:
    """
    Convert a domain name into the key its preferences are stored under.

    Every character outside ``[a-zA-Z0-9]`` is replaced with ``_<code>_`` where
    ``<code>`` is the character's code point, so ``"my-plugin"`` becomes
    ``"my_45_plugin"``. Empty or None names are returned unchanged.

    Args:
        domain_name: Name of the domain (usually the name of the plugin that registered it)

    Returns:
        The escaped preference key
    """
    if not domain_name:
        return domain_name
    return _UNSAFE_KEY_CHARS.sub(lambda match: f"_{ord(match.group(0))}_", domain_name)
