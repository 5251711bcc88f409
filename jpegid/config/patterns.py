import re
from typing import List

DEFAULT_FILE_PATTERNS = [r"(?i)\.jpe?g$"]


def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compiles a file-name pattern, treating `.ext`-style dots literally.

    A leading ``./`` is dropped and every unescaped ``.`` that is followed by an
    ASCII letter is escaped, so ``IMG_.*.jpg`` matches ``IMG_0001.jpg`` but not
    ``IMG_0001xjpg``. Patterns without dots are compiled unchanged.
    """
    if "." not in pattern:
        return re.compile(pattern)
    if pattern.startswith("./") and len(pattern) > 2:
        pattern = pattern[2:]

    built: List[str] = []
    for idx, char in enumerate(pattern):
        prev = built[-1][-1] if built else ""
        nxt = pattern[idx + 1] if idx + 1 < len(pattern) else ""
        if char == "." and prev != "\\" and nxt.isascii() and nxt.isalpha():
            built.append("\\.")
        else:
            built.append(char)
    return re.compile("".join(built))
