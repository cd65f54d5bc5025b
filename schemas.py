from dataclasses import dataclass
from typing import Any, Dict, List, Union

from pydantic import BaseModel, EmailStr, ValidationError


class UserRecord(BaseModel):
    firstName: str
    lastName: str
    email: EmailStr  # Valide l'email automatiquement


class UserEnvelope(BaseModel):
    user: UserRecord


@dataclass(frozen=True)
class Ok:
    record: Dict[str, Any]


@dataclass(frozen=True)
class ValidationFailure:
    errors: List[Dict[str, Any]]


@dataclass(frozen=True)
class Err:
    failure: ValidationFailure


def parse_user_payload(payload: Any) -> Union[Ok, Err]:
    """Validation stricte du corps de POST /api/user."""
    try:
        UserEnvelope.model_validate(payload)
    except ValidationError as e:
        return Err(ValidationFailure(errors=e.errors(include_url=False, include_context=False)))
    # Le record validé est stocké tel qu'il est arrivé
    return Ok(payload["user"])


def extract_user(payload: Any) -> Any:
    """Mode permissif: renvoie le champ `user` tel quel, None s'il manque."""
    if isinstance(payload, dict):
        return payload.get("user")
    return None
