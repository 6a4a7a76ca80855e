"""
通用工具库
功能：目录创建、文件名清洗、清理旧产物
"""
# core/utils.py
from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Union

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

_ILLEGAL_FILENAME_CHARS = '<>:"/\\|?*'


def ensure_dir(p: PathLike) -> Path:
    d = Path(p)
    d.mkdir(parents=True, exist_ok=True)
    return d


def safe_filename(name: str) -> str:
    # minimal cross-platform sanitize
    return "".join(c if c not in _ILLEGAL_FILENAME_CHARS and ord(c) >= 32 else "_" for c in name)


def cleanup_old_files(dir_path: PathLike, older_than_seconds: int = 86400) -> int:
    """
    清理目录中超过 older_than_seconds 的文件（跳过 .gitkeep）。
    返回删除数量。
    """
    d = Path(dir_path)
    if not d.exists():
        return 0

    threshold = time.time() - older_than_seconds
    deleted = 0

    for p in d.glob("*"):
        if not p.is_file() or p.name == ".gitkeep":
            continue
        try:
            if p.stat().st_mtime < threshold:
                p.unlink()
                deleted += 1
        except OSError as e:
            logger.warning("cleanup failed for %s: %s", p, e)

    return deleted
