from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/healthz")
def healthz(request: Request):
    store = request.app.state.services.store
    return {"status": "ok", "store": type(store).__name__}
