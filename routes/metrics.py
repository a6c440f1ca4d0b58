from fastapi import APIRouter, Request
from fastapi.responses import Response

from services.metrics import render_prometheus

router = APIRouter(tags=["metrics"])

PROMETHEUS_CONTENT_TYPE = "text/plain; version=0.0.4"


def _provider_info(request: Request) -> str:
    runtime = getattr(request.app.state, "runtime", None)
    if runtime is None:
        return ""
    return (
        "# TYPE payout_provider_info gauge\n"
        f'payout_provider_info{{provider="{runtime.runner.provider_name}"}} 1\n'
    )


@router.get("/metrics")
def metrics(request: Request):
    return Response(content=render_prometheus() + _provider_info(request), media_type=PROMETHEUS_CONTENT_TYPE)
