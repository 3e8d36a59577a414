from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.security import verify_admin_token
from app.services import ServiceContainer
from app.services.generator_service import GeneratorService
from app.services.message_queue_service import MessageQueueService
from app.services.sold_workflow_service import SoldWorkflowService
from app.services.user_service import UserService

bearer_scheme = HTTPBearer(auto_error=False)

ADMIN_COOKIE_NAME = "admin-token"


def get_container(request: Request) -> ServiceContainer:
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Services are not initialized",
        )
    return container


def get_queue_service(container: ServiceContainer = Depends(get_container)) -> MessageQueueService:
    return container.queue_service


def get_generator_service(container: ServiceContainer = Depends(get_container)) -> GeneratorService:
    return container.generator_service


def get_user_service(container: ServiceContainer = Depends(get_container)) -> UserService:
    return container.user_service


def get_sold_workflow_service(container: ServiceContainer = Depends(get_container)) -> SoldWorkflowService:
    return container.sold_workflow


async def get_current_admin(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> dict:
    token = credentials.credentials if credentials else request.cookies.get(ADMIN_COOKIE_NAME)
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = verify_admin_token(token)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return payload
