from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from gradeflow.core.config import ACCESS_TOKEN_EXPIRE
from gradeflow.core.deps import get_current_user, get_db
from gradeflow.core.security import create_access_token, hash_password, verify_password
from gradeflow.models.enums import Role
from gradeflow.models.user import User
from gradeflow.schemas.auth import LoginRequest, Token
from gradeflow.schemas.user import UserCreate, UserRead
from gradeflow.services import lockout

router = APIRouter()


@router.post(
    "/register",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Email already registered"},
    },
)
def register(payload: UserCreate, db: Session = Depends(get_db)):
    existing_user = db.query(User).filter(User.email == payload.email).first()
    if existing_user:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered",
        )

    user = User(
        email=payload.email,
        full_name=payload.full_name,
        hashed_password=hash_password(payload.password),
        role=Role.STUDENT.value,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@router.post(
    "/login",
    response_model=Token,
    responses={
        401: {"description": "Invalid email or password"},
        429: {"description": "Too many failed attempts"},
    },
)
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    until = lockout.locked_until(db, payload.email)
    if until is not None:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f"Too many failed attempts. Try again after {until.isoformat()}.",
        )

    user = db.query(User).filter(User.email == payload.email).first()
    if not user or not verify_password(payload.password, user.hashed_password):
        lockout.record_failure(db, payload.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    lockout.clear(db, payload.email)

    access_token = create_access_token(
        data={"sub": user.id, "role": user.role},
        expires_delta=ACCESS_TOKEN_EXPIRE,
    )

    return {
        "access_token": access_token,
        "token_type": "bearer",
    }


@router.get("/me", response_model=UserRead)
def me(current_user: User = Depends(get_current_user)):
    return current_user
