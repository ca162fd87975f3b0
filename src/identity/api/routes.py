"""FastAPI endpoints for the Identity domain."""

from fastapi import APIRouter, HTTPException
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from identity.api.schemas import SyncCustomerRequest, SyncCustomerResponse
from identity.customer.sync import SyncCustomer

router = APIRouter(prefix="/customers", tags=["customers"])


@router.post("/sync", response_model=SyncCustomerResponse)
async def sync_customer(body: SyncCustomerRequest) -> SyncCustomerResponse:
    command = SyncCustomer(
        external_id=body.clerk_user_id,
        email=body.email,
        first_name=body.first_name,
        last_name=body.last_name,
        full_name=body.full_name,
    )
    try:
        result = current_domain.process(command, asynchronous=False)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.messages)
    return SyncCustomerResponse(**result)
