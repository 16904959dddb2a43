from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.schemas.user import (
    UserCreate, UserInDB, SignupResponse, UserLogin, LoginResponse,
    ForgotPasswordRequest, ForgotPasswordResponse, ResetPasswordRequest
)
from app.schemas.admin import MessageResponse
from app.services.identity import IdentityService
from app.utils.exceptions import BlogError
from app.utils.security import create_access_token
from dependencies import get_db, logger
from config import FRONTEND_URL, EXPOSE_RESET_LINK

router = APIRouter()

RESET_REQUEST_MESSAGE = "If the account exists, a reset link has been sent."


@router.post("/signup", response_model=SignupResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    user: UserCreate,
    db: AsyncSession = Depends(get_db)
):
    """Register a new account."""
    try:
        db_user = await IdentityService(db).signup(**user.dict())
        return SignupResponse(
            message="User registered successfully",
            user=UserInDB.model_validate(db_user)
        )
    except BlogError:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error in signup: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to register user"
        )


@router.post("/login", response_model=LoginResponse)
async def login(
    user_login: UserLogin,
    db: AsyncSession = Depends(get_db)
):
    """Check credentials and issue a bearer token for the account."""
    try:
        identity = await IdentityService(db).login(user_login.email_or_username, user_login.password)
        access_token = create_access_token(data={"sub": identity["username"]})
        return LoginResponse(
            message="Login successful",
            username=identity["username"],
            email=identity["email"],
            access_token=access_token,
            token_type="bearer"
        )
    except BlogError:
        raise
    except Exception as e:
        logger.error(f"Error in login: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to log in"
        )


@router.post("/forgot-password", response_model=ForgotPasswordResponse)
async def forgot_password(
    request: ForgotPasswordRequest,
    db: AsyncSession = Depends(get_db)
):
    """Open a reset window. The answer is the same whether or not the account exists."""
    try:
        token = await IdentityService(db).request_password_reset(request.email_or_username)
    except Exception as e:
        await db.rollback()
        logger.error(f"Error in forgot_password: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to process reset request"
        )

    response = ForgotPasswordResponse(message=RESET_REQUEST_MESSAGE)
    if token and EXPOSE_RESET_LINK:
        response.reset_link = f"{FRONTEND_URL}/#/reset?token={token}"
    return response


@router.post("/reset-password/{token}", response_model=MessageResponse)
async def reset_password(
    token: str,
    request: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db)
):
    try:
        await IdentityService(db).reset_password(token, request.new_password, request.confirm_password)
        return MessageResponse(message="Password reset successfully")
    except BlogError:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error in reset_password: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to reset password"
        )
