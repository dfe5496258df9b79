from fastapi import APIRouter

from kudos.api.v1.endpoints import tasks, categories, users, gamification

api_router = APIRouter()

api_router.include_router(tasks.router, prefix="/tasks", tags=["tasks"])
api_router.include_router(categories.router, prefix="/categories", tags=["categories"])
api_router.include_router(categories.tags_router, prefix="/tags", tags=["tags"])
api_router.include_router(users.router, prefix="/user", tags=["users"])
api_router.include_router(gamification.router, prefix="/gamification", tags=["gamification"])
