"""Shared request dependencies and schema base."""

from datetime import date

from fastapi import Depends, Header
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy.orm import Session

from condo_finance.core.errors import AuthError
from condo_finance.db.database import get_db
from condo_finance.models.access_token import AccessToken
from condo_finance.services.store import store_errors


class CamelModel(BaseModel):
    """camelCase on the wire; snake_case accepted on input too."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


def get_today() -> date:
    return date.today()


def get_current_condominium_id(
    authorization: str | None = Header(None),
    db: Session = Depends(get_db),
) -> int:
    """Resolve `Authorization: Bearer <token>` to the caller's condominium."""
    if not authorization:
        raise AuthError()
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthError()
    with store_errors(db, "resolve access token"):
        row = db.get(AccessToken, token.strip())
    if row is None:
        raise AuthError()
    return row.condominium_id
