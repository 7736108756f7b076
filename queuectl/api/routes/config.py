"""
Runtime config routes.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from queuectl.constants import API_V1_PREFIX
from queuectl.db import get_async_session
from queuectl.errors import ConfigValidationError
from queuectl.queue.service import QueueService
from queuectl.types.api import ConfigValueRequest, ConfigValueResponse

router = APIRouter(prefix=f"{API_V1_PREFIX}/config", tags=["Config"])


@router.get(
    "/{key}",
    response_model=ConfigValueResponse,
    summary="Get a config value",
    description="Effective value of a key; unset policy keys report their default.",
)
async def get_config(
    key: str,
    session: AsyncSession = Depends(get_async_session),
) -> ConfigValueResponse:
    value = await QueueService(session).get_config(key)
    return ConfigValueResponse(key=key, value=value)


@router.put(
    "/{key}",
    response_model=ConfigValueResponse,
    summary="Set a config value",
)
async def set_config(
    key: str,
    request: ConfigValueRequest,
    session: AsyncSession = Depends(get_async_session),
) -> ConfigValueResponse:
    """
    Set a config value.

    Raises:
        HTTPException: 422 if a policy key gets an unusable value.
    """
    try:
        value = await QueueService(session).set_config(key, request.value)
    except ConfigValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e),
        )

    await session.commit()
    return ConfigValueResponse(key=key, value=value)
