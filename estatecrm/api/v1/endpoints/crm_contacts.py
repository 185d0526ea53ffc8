"""API endpoints for reading a user's CRM contacts."""

import json
from typing import Optional

from fastapi import Depends, Header, Request
from fastapi.responses import JSONResponse

from estatecrm.api.cancellation import run_until_disconnected
from estatecrm.api.context import ApiContext
from estatecrm.api.deps import get_context, get_crm_contacts_service
from estatecrm.api.router import TrailingSlashRouter
from estatecrm.core.crm_contacts_service import CrmContactsService
from estatecrm.schemas import ContactsRequest, ContactsResponse, ErrorResponse

router = TrailingSlashRouter()

CLIENT_CLOSED_REQUEST = 499


async def read_contacts_request(request: Request) -> ContactsRequest:
    """Parse the optional JSON body.

    An empty or non-JSON body means default pagination. A JSON object with
    invalid values raises a ValidationError, answered with 422.
    """
    raw = await request.body()
    if not raw.strip():
        return ContactsRequest()
    try:
        data = json.loads(raw)
    except ValueError:
        return ContactsRequest()
    if not isinstance(data, dict):
        return ContactsRequest()
    return ContactsRequest.model_validate(data)


@router.post(
    "/contacts",
    response_model=ContactsResponse,
    responses={
        400: {"model": ErrorResponse, "description": "CRM not configured"},
        401: {"model": ErrorResponse, "description": "Authentication missing or invalid"},
        422: {"model": ErrorResponse, "description": "Invalid pagination parameters"},
        500: {"model": ErrorResponse, "description": "CRM call failed"},
    },
)
async def fetch_crm_contacts(
    request: Request,
    ctx: ApiContext = Depends(get_context),
    service: CrmContactsService = Depends(get_crm_contacts_service),
    authorization: Optional[str] = Header(None),
) -> JSONResponse:
    """Fetch the caller's contacts from their configured CRM.

    Body: ``{"limit": 100, "offset": 0}``, both optional.

    ``crm_type`` in the success body is the canonical lowercase provider value
    (``hubspot``, ``salesforce``, ``pipedrive``), not the tag as stored in the
    profile: a profile saved as ``HubSpot`` answers ``"crm_type": "hubspot"``.

    Returns:
    --------
        JSONResponse: ``{success, crm_type, contacts, total_count, has_more}`` on success,
            ``{error, details?, contacts: []}`` otherwise.
    """
    params = await read_contacts_request(request)
    result = await run_until_disconnected(
        service.handle(
            authorization,
            limit=params.limit,
            offset=params.offset,
            request_id=ctx.request_id,
        ),
        request.is_disconnected,
        log=ctx.logger,
    )
    if result is None:
        content = ErrorResponse(error="Request cancelled").model_dump(
            mode="json", exclude_none=True
        )
        return JSONResponse(status_code=CLIENT_CLOSED_REQUEST, content=content)

    return JSONResponse(status_code=result.status_code, content=result.content())
