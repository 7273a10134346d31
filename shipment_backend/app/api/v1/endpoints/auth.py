"""
Authentication API endpoints.

Signup, login, logout, profile maintenance, approval status and 4-digit
account lookup for the mobile app.
"""

import re
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, Path, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError
from sqlalchemy import select, or_
from shipment_backend.app.db.session import get_db
from shipment_backend.app.models.user import User
from shipment_backend.app.models.enums import UserType, AccountStatus
from shipment_backend.app.schemas.auth import (
    UserSignup, UserLogin, SignupResponse, UserResponse, LoginResponse,
    UserProfileUpdate, PasswordChange, AccountStatusResponse
)
from shipment_backend.app.schemas.shipment import MessageResponse
from shipment_backend.app.core.exceptions import (
    AccountNotApprovedError,
    AuthenticationError,
    ConflictError,
    FieldValidationError,
    InsufficientPermissionsError,
    ResourceNotFoundError,
    RevocationUnavailableError,
)
from shipment_backend.app.core.security import get_password_hash, verify_password
from shipment_backend.app.core.jwt import create_user_token
from shipment_backend.app.core.dependencies import get_current_user
from shipment_backend.app.core.token_revocation import revoke_token
from shipment_backend.app.services.audit import log_event, log_auth_event, AuditAction
from shipment_backend.app.services.id_generator import USER_ID, insert_with_identifier

router = APIRouter(tags=["Authentication"])

# Same answer for unknown email and wrong password
INVALID_CREDENTIALS = "Invalid email or password"

# Checked against when the email is unknown
_TIMING_HASH = get_password_hash("timing-equaliser")


def _client_ip(request: Request):
    return request.client.host if request.client else None


@router.post("/signup", response_model=SignupResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    user_data: UserSignup,
    request: Request,
    db: AsyncSession = Depends(get_db)
):
    """
    Register a new account.
    
    - Admin accounts cannot be created via API.
    - Email must be unique.
    - Employee accounts wait for admin approval before they can log in.
    - A 4-digit `user_id` is allocated for the account.
    """
    if user_data.type == UserType.ADMIN:
        raise InsufficientPermissionsError("Admin accounts cannot be registered via API")
    
    result = await db.execute(select(User.id).where(User.email == user_data.email))
    if result.first() is not None:
        raise ConflictError("Email already registered", details={"field": "email"})
    
    account_status = (
        AccountStatus.PENDING_APPROVAL if user_data.type.requires_approval else AccountStatus.APPROVED
    )
    hashed_password = get_password_hash(user_data.password)
    
    def build(user_id):
        return User(
            user_id=user_id,
            name=user_data.name,
            email=user_data.email,
            phone=user_data.phone,
            hashed_password=hashed_password,
            type=user_data.type,
            status=account_status,
            is_active=True,
        )
    
    try:
        new_user = await insert_with_identifier(db, USER_ID, build)
    except IntegrityError:
        # Another request registered the same email between check and insert
        raise ConflictError("Email already registered", details={"field": "email"})
    
    await log_event(
        db=db,
        action=AuditAction.USER_CREATED,
        actor_id=new_user.id,
        actor_email=new_user.email,
        entity_type="user",
        entity_id=new_user.user_id,
        metadata={"type": new_user.type.value, "status": new_user.status.value},
        ip_address=_client_ip(request)
    )
    
    if account_status == AccountStatus.PENDING_APPROVAL:
        message = "Registration successful. Your account is pending admin approval."
    else:
        message = "User registered successfully"
    
    return SignupResponse(
        id=new_user.id,
        user_id=new_user.user_id,
        status=new_user.status,
        message=message
    )


@router.post("/login", response_model=LoginResponse)
async def login(
    credentials: UserLogin,
    request: Request,
    db: AsyncSession = Depends(get_db)
):
    """
    Login with email and password.
    
    Unknown email and wrong password produce the same 401 so accounts cannot
    be enumerated; the real reason is kept in the audit log.
    """
    email = credentials.email.strip().lower()
    ip_address = _client_ip(request)
    
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    
    # Unknown emails cost one bcrypt check too
    password_ok = verify_password(
        credentials.password,
        user.hashed_password if user else _TIMING_HASH
    )
    if not user or not password_ok:
        await log_auth_event(
            db=db,
            action=AuditAction.LOGIN_FAILED,
            user_id=user.id if user else None,
            email=email,
            ip_address=ip_address,
            metadata={"reason": "Invalid password" if user else "User not found"}
        )
        raise AuthenticationError(INVALID_CREDENTIALS)
    
    if not user.is_active:
        await log_auth_event(
            db=db,
            action=AuditAction.LOGIN_FAILED,
            user_id=user.id,
            email=email,
            ip_address=ip_address,
            metadata={"reason": "Account is inactive"}
        )
        raise InsufficientPermissionsError("Inactive user account")
    
    if user.status != AccountStatus.APPROVED:
        await log_auth_event(
            db=db,
            action=AuditAction.LOGIN_FAILED,
            user_id=user.id,
            email=email,
            ip_address=ip_address,
            metadata={"reason": f"Account status {user.status.value}"}
        )
        raise AccountNotApprovedError(user.status.value)
    
    user.last_login = datetime.now(timezone.utc)
    await db.commit()
    await db.refresh(user)
    
    access_token = create_user_token(user)
    
    await log_auth_event(
        db=db,
        action=AuditAction.LOGIN_SUCCESS,
        user_id=user.id,
        email=user.email,
        ip_address=ip_address
    )
    
    return LoginResponse(
        **UserResponse.model_validate(user).model_dump(),
        access_token=access_token,
        token_type="bearer"
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Revoke the bearer token used for this request."""
    if not await revoke_token(current_user["token"], current_user["user_id"]):
        # Blacklist write failed; the token is still valid
        raise RevocationUnavailableError()
    
    await log_auth_event(
        db=db,
        action=AuditAction.LOGOUT,
        user_id=current_user["user_id"],
        email=current_user.get("sub"),
        ip_address=_client_ip(request)
    )
    
    return MessageResponse(message="Logged out successfully")


async def _load_account(db: AsyncSession, current_user: dict) -> User:
    result = await db.execute(select(User).where(User.id == current_user["user_id"]))
    user = result.scalar_one_or_none()
    if not user:
        raise ResourceNotFoundError("User", current_user["user_id"])
    return user


@router.get("/profile", response_model=UserResponse)
async def get_profile(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Return the account behind the bearer token."""
    return UserResponse.model_validate(await _load_account(db, current_user))


@router.patch("/profile", response_model=UserResponse)
async def update_profile(
    changes: UserProfileUpdate,
    request: Request,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Update name, email and/or phone of the caller's account.
    
    Email and phone must not belong to another account.
    """
    values = changes.model_dump(exclude_unset=True, exclude_none=True)
    if not values:
        raise FieldValidationError("No valid fields to update")
    
    user = await _load_account(db, current_user)
    
    for field in ("email", "phone"):
        if field in values:
            column = getattr(User, field)
            taken = await db.execute(
                select(User.id).where(column == values[field], User.id != user.id).limit(1)
            )
            if taken.first() is not None:
                raise ConflictError(f"{field.capitalize()} is already registered", details={"field": field})
    
    for field, value in values.items():
        setattr(user, field, value)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Email is already registered", details={"field": "email"})
    await db.refresh(user)
    
    await log_event(
        db=db,
        action=AuditAction.PROFILE_UPDATED,
        actor_id=user.id,
        actor_email=user.email,
        entity_type="user",
        entity_id=user.user_id,
        metadata={"fields": sorted(values)},
        ip_address=_client_ip(request)
    )
    
    return UserResponse.model_validate(user)


@router.patch("/change-password", response_model=MessageResponse)
async def change_password(
    passwords: PasswordChange,
    request: Request,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Replace the caller's password after checking the current one."""
    user = await _load_account(db, current_user)
    
    if not verify_password(passwords.current_password, user.hashed_password):
        raise AuthenticationError("Current password is incorrect")
    
    user.hashed_password = get_password_hash(passwords.new_password)
    await db.commit()
    
    await log_auth_event(
        db=db,
        action=AuditAction.PASSWORD_CHANGED,
        user_id=user.id,
        email=user.email,
        ip_address=_client_ip(request)
    )
    
    return MessageResponse(message="Password changed successfully")


@router.get("/status/{identifier}", response_model=AccountStatusResponse)
async def account_status(
    identifier: str = Path(..., description="Email, phone number or 4-digit user_id"),
    db: AsyncSession = Depends(get_db)
):
    """
    Approval state of an account, looked up by email, phone or user_id.
    
    Lets an employee waiting for approval check progress without logging in.
    """
    identifier = identifier.strip()
    conditions = [User.email == identifier.lower()]
    digits = re.sub(r"\D", "", identifier)
    if digits:
        conditions.append(User.phone == digits)
    if identifier.isdigit() and USER_ID.contains(int(identifier)):
        conditions.append(User.user_id == int(identifier))
    
    result = await db.execute(select(User).where(or_(*conditions)).order_by(User.id).limit(1))
    user = result.scalars().first()
    
    if not user:
        raise ResourceNotFoundError("User")
    
    return AccountStatusResponse(
        user_id=user.user_id,
        name=user.name,
        type=user.type,
        status=user.status,
        needs_approval=user.status == AccountStatus.PENDING_APPROVAL
    )


@router.get("/user_id", response_model=UserResponse)
async def get_user_by_code(
    user_id: int = Query(..., description="4-digit account code"),
    db: AsyncSession = Depends(get_db)
):
    """Look up an account by its 4-digit `user_id`."""
    result = await db.execute(select(User).where(User.user_id == user_id))
    user = result.scalar_one_or_none()
    
    if not user:
        raise ResourceNotFoundError("User", user_id)
    
    return UserResponse.model_validate(user)
