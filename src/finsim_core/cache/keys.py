# src/finsim_core/cache/keys.py
from typing import Optional, Tuple


def create_program_key(source: Optional[str]) -> Tuple[str, str]:
    """
    Cache key for a program text. Line endings are normalized so that the same
    program saved on different platforms compiles once.
    """
    text = source or ""
    return ("program", text.replace("\r\n", "\n"))
