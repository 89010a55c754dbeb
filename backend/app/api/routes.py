from fastapi import APIRouter

from app.api.realtime import router as realtime_router

router = APIRouter()

router.include_router(realtime_router)


@router.get("/", tags=["root"])
def read_root() -> dict[str, str]:
    return {"message": "Wayfarer collaboration API"}
