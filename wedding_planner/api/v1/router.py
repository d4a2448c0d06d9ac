from fastapi import APIRouter

from wedding_planner.api.v1.endpoints import reminders

api_router = APIRouter()
api_router.include_router(reminders.router)
