# deps/admin.py
import hmac
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.runtime import PayoutRuntime
from settings import settings

bearer = HTTPBearer(auto_error=False)


def _matches(candidate: Optional[str], secret: str) -> bool:
    # an unset secret never authenticates
    if not secret or not candidate:
        return False
    return hmac.compare_digest(candidate.encode(), secret.encode())


def require_admin(x_admin_key: Optional[str] = Header(default=None, alias="X-Admin-Key")) -> str:
    if not _matches(x_admin_key, settings.ADMIN_API_KEY):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="ADMIN_REQUIRED")
    return "admin"


def require_admin_or_cron(
    x_admin_key: Optional[str] = Header(default=None, alias="X-Admin-Key"),
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
) -> str:
    if _matches(x_admin_key, settings.ADMIN_API_KEY):
        return "admin"
    if creds and (creds.scheme or "").lower() == "bearer" and _matches(creds.credentials, settings.CRON_SECRET):
        return "cron"
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="UNAUTHORIZED")


def get_runtime(request: Request) -> PayoutRuntime:
    runtime = getattr(request.app.state, "runtime", None)
    if runtime is None:
        raise HTTPException(status_code=503, detail="Payout engine not ready")
    return runtime
