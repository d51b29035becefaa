from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from gradeflow.core.security import decode_access_token
from gradeflow.db.session import SessionLocal
from gradeflow.models.user import User

bearer_scheme = HTTPBearer(auto_error=False)


# every request that needs the store gets a fresh session, and it always closes.
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise unauthorized

    payload = decode_access_token(credentials.credentials)
    if not payload or not payload.get("sub"):
        raise unauthorized

    user = db.query(User).filter(User.id == payload["sub"]).first()
    if not user:
        raise unauthorized
    return user


def get_client_context(
    me: User = Depends(get_current_user),
    x_client_context: str | None = Header(default=None),
) -> str:
    """Key for single-flight checks: the actor plus the caller's own context tag."""
    return f"{me.id}:{x_client_context or '-'}"
