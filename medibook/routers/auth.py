"""Sign-up, sign-in and session endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from medibook.models import UserProfile
from medibook.routers.deps import get_bearer_token, get_current_user
from medibook.schemas import UserProfileOut
from medibook.services.auth import (
    AuthenticationError,
    DuplicateAccountError,
    sign_in,
    sign_out,
    sign_up,
)
from medibook.services.db import get_db

router = APIRouter()


class SignUpRequest(BaseModel):
    email: str = Field(min_length=3)
    password: str = Field(min_length=6)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None


class SignInRequest(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime
    user: UserProfileOut


@router.post("/signup", response_model=UserProfileOut, status_code=status.HTTP_201_CREATED)
def create_account(payload: SignUpRequest, db: Session = Depends(get_db)) -> UserProfileOut:
    try:
        profile = sign_up(
            db,
            email=payload.email,
            password=payload.password,
            first_name=payload.first_name,
            last_name=payload.last_name,
            phone=payload.phone,
        )
    except DuplicateAccountError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    db.commit()
    return UserProfileOut.model_validate(profile)


@router.post("/signin", response_model=TokenResponse)
def create_session(payload: SignInRequest, db: Session = Depends(get_db)) -> TokenResponse:
    try:
        issued = sign_in(db, email=payload.email, password=payload.password)
    except AuthenticationError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
    return TokenResponse(
        access_token=issued.access_token,
        expires_at=issued.expires_at,
        user=UserProfileOut.model_validate(issued.profile),
    )


@router.get("/session", response_model=UserProfileOut)
def read_session(user: UserProfile = Depends(get_current_user)) -> UserProfileOut:
    return UserProfileOut.model_validate(user)


@router.post("/signout", status_code=status.HTTP_204_NO_CONTENT)
def end_session(token: str = Depends(get_bearer_token)) -> None:
    try:
        sign_out(token)
    except AuthenticationError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
