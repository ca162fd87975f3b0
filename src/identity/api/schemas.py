"""Pydantic request/response schemas for the Identity API."""

from __future__ import annotations

from pydantic import BaseModel, Field

# --- Request Schemas ---


class SyncCustomerRequest(BaseModel):
    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "clerk_user_id": "user_2abcXYZ",
                    "email": "jane.doe@example.com",
                    "first_name": "Jane",
                    "last_name": "Doe",
                }
            ]
        }
    }

    clerk_user_id: str | None = Field(None, max_length=255)
    email: str = Field(..., max_length=254)
    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    full_name: str | None = Field(None, max_length=255)


# --- Response Schemas ---


class SyncCustomerResponse(BaseModel):
    customer_id: str
    created: bool
