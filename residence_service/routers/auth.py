import re

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import (
    authenticate_user,
    create_token_for_user,
    get_current_user,
    get_password_hash,
    get_user_by_email,
)
from ..database import get_db
from ..errors import ConflictError, InternalError, ValidationError
from ..rate_limiter import ip_rate_limiter

router = APIRouter(prefix="/auth", tags=["auth"])


# ---------- Password Strength ----------

def validate_password_strength(password: str):
    """
    Validate password complexity rules.

    A valid password must:
    - Be at least 8 characters long
    - Contain at least one letter
    - Contain at least one digit

    Raises
    ------
    ValidationError
        If the password does not meet the strength requirements.
    """
    if len(password) < 8:
        raise ValidationError("Password must be at least 8 characters long")
    if not re.search(r"[A-Za-z]", password):
        raise ValidationError("Password must contain at least one letter")
    if not re.search(r"\d", password):
        raise ValidationError("Password must contain at least one digit")


# ---------- Registration ----------

@router.post(
    "/register",
    response_model=schemas.ApiResponse[schemas.AuthResult],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(ip_rate_limiter)],
)
def register_user(user_in: schemas.UserCreate, db: Session = Depends(get_db)):
    """
    Register a new account and return it with an access token.

    Behavior
    --------
    - First account created becomes ADMIN.
    - All subsequent registrations become RESIDENT users.
    - Email must be unique.
    - Password strength is validated before hashing.

    Raises
    ------
    ConflictError
        If the email is already registered.
    ValidationError
        If the password is weak.
    """
    if get_user_by_email(db, user_in.email):
        raise ConflictError("User with this email already exists")

    validate_password_strength(user_in.password)

    # --- Bootstrap admin + secure default roles ---
    if db.query(models.User).count() == 0:
        assigned_role = models.UserRole.ADMIN
    else:
        assigned_role = models.UserRole.RESIDENT

    user = models.User(
        email=user_in.email,
        password_hash=get_password_hash(user_in.password),
        first_name=user_in.first_name,
        last_name=user_in.last_name,
        phone=user_in.phone,
        apartment_number=user_in.apartment_number,
        role=assigned_role,
    )
    db.add(user)
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise InternalError("Failed to create user") from exc
    db.refresh(user)

    return schemas.ApiResponse(
        data=schemas.AuthResult(
            user=schemas.UserRead.model_validate(user),
            access_token=create_token_for_user(user),
        ),
        message="User registered successfully",
    )


# ---------- Login (token) ----------

@router.post(
    "/login",
    response_model=schemas.ApiResponse[schemas.AuthResult],
    dependencies=[Depends(ip_rate_limiter)],
)
def login(credentials: schemas.UserLogin, db: Session = Depends(get_db)):
    """
    Authenticate with email and password and return a JWT access token.

    Raises
    ------
    HTTPException
        401 if the credentials are wrong or the account is inactive.
    """
    user = authenticate_user(db, credentials.email, credentials.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    return schemas.ApiResponse(
        data=schemas.AuthResult(
            user=schemas.UserRead.model_validate(user),
            access_token=create_token_for_user(user),
        ),
        message="Login successful",
    )


@router.get("/profile", response_model=schemas.ApiResponse[schemas.UserRead])
def get_my_profile(current_user: models.User = Depends(get_current_user)):
    """
    Retrieve the authenticated user's own profile.
    """
    return schemas.ApiResponse(
        data=schemas.UserRead.model_validate(current_user),
        message="Profile retrieved successfully",
    )
