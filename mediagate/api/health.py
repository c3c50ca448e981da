import platform
import time
from typing import Any, Dict

from fastapi import Request

from mediagate.metrics import BUILD_VERSION, GIT_SHA


async def health(request: Request) -> Dict[str, Any]:
    accounts = getattr(request.app.state, "accounts", None)
    return {
        "status": "ok" if accounts is not None else "degraded",
        "version": BUILD_VERSION,
        "git": GIT_SHA,
        "ts": time.time(),
        "config": {
            "loaded": accounts is not None,
            "accounts": len(accounts) if accounts is not None else 0,
        },
        "runtime": {
            "python": platform.python_version(),
        },
    }
