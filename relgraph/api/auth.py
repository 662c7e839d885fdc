import secrets

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from relgraph.config import settings
from relgraph.domain.edge import validate_identity
from relgraph.domain.errors import InvalidArgumentError
from relgraph.identity_store.base import IdentityStore

security = HTTPBasic()


def verify_credentials(credentials: HTTPBasicCredentials = Depends(security)) -> str:  # noqa: B008
    """Verify the gateway's basic auth credentials."""
    is_correct_username = secrets.compare_digest(credentials.username, settings.auth_username)
    is_correct_password = secrets.compare_digest(credentials.password, settings.auth_password)

    if not (is_correct_username and is_correct_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Basic"},
        )
    return credentials.username


def get_caller_dependency(identity_store: IdentityStore):
    """Create the dependency resolving the caller identity forwarded by the gateway."""

    async def get_caller(
        x_user_id: str | None = Header(default=None),
        _: str = Depends(verify_credentials),
    ) -> str:
        if not x_user_id:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="User not authenticated",
            )
        try:
            validate_identity(x_user_id)
        except InvalidArgumentError as err:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="User not authenticated",
            ) from err
        if not await identity_store.exists(x_user_id):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="User not authenticated",
            )
        return x_user_id

    return get_caller
