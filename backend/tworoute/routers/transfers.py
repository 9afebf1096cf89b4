"""Transfer router: compose a primary + backup route between two points."""

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from tworoute.config import settings
from tworoute.exceptions import NoRouteFound
from tworoute.schemas.transfer import TransferRequestSchema
from tworoute.services.transfer.composer import TransferComposer

logger = logging.getLogger(__name__)

router = APIRouter()


def get_composer(request: Request) -> TransferComposer:
    return request.app.state.composer


@router.post("/compose")
async def compose_transfer(
    body: TransferRequestSchema,
    composer: TransferComposer = Depends(get_composer),
):
    """Compose the best route and a diverse backup for a transfer."""
    transfer_request = body.to_domain()
    try:
        result = await composer.compose(transfer_request, timeout=settings.compose_timeout_seconds)
    except NoRouteFound as e:
        raise HTTPException(
            status_code=404,
            detail={"message": str(e), "strategies": e.failures},
        )
    except asyncio.TimeoutError:
        logger.error(f"Transfer composition timed out: {body.origin.name} -> {body.destination.name}")
        raise HTTPException(status_code=504, detail="Route composition timed out. Please try again.")

    return result.to_dict()
