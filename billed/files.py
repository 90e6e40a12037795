from __future__ import annotations

import re
from pathlib import PurePosixPath

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


def safe_filename(raw: str, *, default: str = "upload.bin", max_len: int = 180) -> str:
    """
    Basename under which a receipt is written to disk.

    Only the last path component of ``raw`` is kept (either separator); runs
    of characters outside ``[A-Za-z0-9._-]`` become one underscore. When the
    result is too long the stem is cut so the extension survives.
    """
    last = str(raw or "").replace("\x00", "").replace("\\", "/").rsplit("/", 1)[-1]
    name = _UNSAFE.sub("_", last.strip()).strip(" ._")
    if name in {"", ".", ".."}:
        return default
    if 0 < max_len < len(name):
        suffix = PurePosixPath(name).suffix
        name = name[: max(1, max_len - len(suffix))].rstrip(".") + suffix
    return name
