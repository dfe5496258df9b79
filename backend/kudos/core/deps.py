from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from kudos.core.errors import ValidationError
from kudos.core.security import SecurityService
from kudos.database import get_db
from kudos.domain.entities import User
from kudos.services.locks import UserLockRegistry
from kudos.services.tasks import TaskLifecycleService
from kudos.services.users import UserService

security = HTTPBearer()


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid authentication credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> User:
    """Dependency to get the user behind the identity provider's bearer token"""
    payload = SecurityService.decode_token(credentials.credentials)
    if not payload or not payload.get("email"):
        raise _unauthorized()

    try:
        return await UserService(db).provision(
            auth_subject=str(payload["sub"]),
            email=payload["email"],
            name=payload.get("name"),
        )
    except ValidationError:
        raise _unauthorized()


def get_user_locks(request: Request) -> UserLockRegistry:
    locks = getattr(request.app.state, "user_locks", None)
    if locks is None:
        locks = request.app.state.user_locks = UserLockRegistry()
    return locks


def get_task_service(
    db: AsyncSession = Depends(get_db),
    locks: UserLockRegistry = Depends(get_user_locks)
) -> TaskLifecycleService:
    return TaskLifecycleService(db, locks=locks)
