from fastapi import APIRouter

from app.api.v1.endpoints import run_imports, runs

api_router = APIRouter()
api_router.include_router(run_imports.router, prefix="/run-imports", tags=["run-imports"])
api_router.include_router(runs.router, prefix="/runs", tags=["runs"])
