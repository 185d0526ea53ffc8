"""Request and response envelopes of the CRM contacts endpoint."""

from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field

from estatecrm.schemas.contact import Contact


class Principal(BaseModel):
    """The authenticated identity making the request."""

    id: str
    email: Optional[str] = None


class ContactsRequest(BaseModel):
    """Pagination parameters for a contacts fetch."""

    limit: int = Field(100, ge=0, description="Maximum number of contacts to return.")
    offset: int = Field(0, ge=0, description="Number of contacts to skip.")


class ContactsResponse(BaseModel):
    """Successful contacts fetch."""

    success: Literal[True] = True
    crm_type: str = Field(
        ..., description="Canonical lowercase provider value, whatever casing the profile stores."
    )
    contacts: List[Contact]
    total_count: int
    has_more: bool


class ErrorResponse(BaseModel):
    """Failed contacts fetch. Always carries an empty contact list."""

    error: str
    details: Optional[str] = None
    contacts: List[Contact] = Field(default_factory=list)


class ServiceResult(BaseModel):
    """An envelope together with the HTTP status it maps to."""

    status_code: int
    body: Union[ContactsResponse, ErrorResponse]

    def content(self) -> dict:
        """JSON-serializable body, omitting null details."""
        return self.body.model_dump(mode="json", exclude_none=True)
