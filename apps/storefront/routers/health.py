"""Health и ready endpoints."""
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

router = APIRouter()


@router.get("/health")
def health():
    return {"status": "ok", "service": "storefront"}


@router.get("/ready")
def ready(request: Request):
    store = request.app.state.activity_store
    try:
        with store.session() as db:
            db.execute(text("SELECT 1"))
    except Exception as e:
        return JSONResponse({"status": "error", "detail": str(e)}, status_code=503)
    return {"status": "ok"}
