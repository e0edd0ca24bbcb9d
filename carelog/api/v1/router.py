# carelog/api/v1/router.py
from fastapi import APIRouter

from carelog.api.v1.endpoints import care_logs

api_router = APIRouter()

api_router.include_router(care_logs.router, prefix="/care-logs", tags=["care-logs"])
