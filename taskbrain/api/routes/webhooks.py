"""Inbound provider webhooks.

The raw body is handed to the pipeline untouched so the HMAC is computed
over exactly the bytes the provider signed.
"""

from fastapi import APIRouter, Request

from taskbrain.api.dependencies import SyncPipelineDep
from taskbrain.errors import NotFoundError
from taskbrain.sync.pipeline import SyncOutcome
from taskbrain.sync.signatures import SIGNATURE_HEADERS

router = APIRouter(prefix="/webhooks")


@router.post("/{provider}", response_model=SyncOutcome)
async def receive_webhook(
    provider: str,
    request: Request,
    pipeline: SyncPipelineDep,
) -> SyncOutcome:
    header = SIGNATURE_HEADERS.get(provider)
    if header is None:
        raise NotFoundError("Webhook provider", provider)

    body = await request.body()
    return await pipeline.handle_webhook(provider, body, request.headers.get(header))
