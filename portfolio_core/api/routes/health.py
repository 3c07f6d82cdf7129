from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/ready")
def ready(request: Request):
    service = getattr(request.app.state, "portfolio_service", None)
    running = service is not None and not service.is_closed
    return {
        "status": "ready" if running else "not_ready",
        "refresh_state": service.scheduler.state.value if running else None,
    }
