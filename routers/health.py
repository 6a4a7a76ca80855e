"""
健康检查路由
功能：用于云服务监控存活状态
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

from fastapi import APIRouter

from core.config import get_settings
from core.generators import list_styles

router = APIRouter(prefix="/api/v1", tags=["Health"])


@router.get("/health")
def health() -> Dict[str, Any]:
    """
    健康检查（给前端 / 部署平台 / 监控用）
    - always returns ok=True if API is alive
    - extra diagnostics: output dir, registered styles
    """
    s = get_settings()
    outputs = Path(s.output_dir)

    return {
        "ok": True,
        "env": s.app_env,
        "paths": {
            "output_dir": str(outputs),
        },
        "checks": {
            "output_dir_exists": outputs.exists(),
            "styles": list_styles(),
        },
    }
