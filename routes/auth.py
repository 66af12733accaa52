from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from learning_service import models, storage
from learning_service.auth import get_password_hash, verify_password
from learning_service.database import get_db
from learning_service.dependencies import get_current_user
from schemas.api import LoginRequest, RegisterRequest, UserOut

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", response_model=UserOut, status_code=201)
async def register(payload: RegisterRequest, request: Request, db: AsyncSession = Depends(get_db)):
    if await storage.get_user_by_email(db, payload.email):
        raise HTTPException(status_code=400, detail="Email already exists")
    try:
        user = await storage.create_user(
            db,
            email=payload.email,
            hashed_password=get_password_hash(payload.password),
            full_name=payload.full_name,
        )
    except IntegrityError as exc:
        await db.rollback()
        raise HTTPException(status_code=400, detail="Email already exists") from exc

    request.session["user_id"] = user.id
    return user


@router.post("/login", response_model=UserOut)
async def login(payload: LoginRequest, request: Request, db: AsyncSession = Depends(get_db)):
    user = await storage.get_user_by_email(db, payload.email)
    if not user or not verify_password(payload.password, user.hashed_password):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    request.session["user_id"] = user.id
    return user


@router.get("/me", response_model=UserOut)
async def me(user: models.User = Depends(get_current_user)):
    return user


@router.post("/logout")
async def logout(request: Request):
    request.session.clear()
    return {"status": "ok"}
