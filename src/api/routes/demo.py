"""
Demo endpoints - [/v1/demo]
"""

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.API)

router = APIRouter(prefix="/v1", tags=["Demo"])


@router.get(
    "/demo",
    response_class=PlainTextResponse,
    summary="Demo",
    responses={200: {"content": {"text/plain": {"example": "Hello World!"}}}},
)
async def get_demo() -> str:
    return "Hello World!"
