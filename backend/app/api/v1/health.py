r"""backend\app\api\v1\health.py

Liveness and readiness checks.

``/health`` only proves the process is serving requests.  ``/health/ready``
additionally reports whether the settings file the services were built from
is present, which is what orchestrators should gate traffic on.
"""

import os

from fastapi import APIRouter, Response, status

router = APIRouter()


@router.get("/health")
async def health_check() -> dict[str, str]:
    """Return a basic health indicator."""
    return {"status": "ok"}


@router.get("/health/ready")
async def readiness_check(response: Response) -> dict[str, object]:
    settings_path = os.path.join(os.getenv("CONFIG_DIR", "configs"), "settings.yaml")
    ready = os.path.exists(settings_path)
    if not ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return {"status": "ok" if ready else "degraded", "settings_file": ready}
