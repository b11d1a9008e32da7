import hashlib
from typing import Optional
import bcrypt
from bson import ObjectId
from jose import JWTError, jwt
from datetime import datetime, timedelta, timezone
from fastapi import Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.security import APIKeyCookie
from config import Config
from models import User

SECRET_KEY = Config.SECRET_KEY
ALGORITHM = Config.ALGORITHM
ACCESS_TOKEN_EXPIRE_HOURS = Config.ACCESS_TOKEN_EXPIRE_HOURS

def verify_password(plain_password: str, hashed_password: str) -> bool:
    prehashed = hashlib.sha256(plain_password.encode("utf-8")).digest()
    return bcrypt.checkpw(prehashed, hashed_password.encode("utf-8"))

def get_password_hash(password: str, rounds: int = 12) -> str:
    prehashed = hashlib.sha256(password.encode("utf-8")).digest()
    return bcrypt.hashpw(prehashed, bcrypt.gensalt(rounds=rounds)).decode("utf-8")

def create_access_token(user_id: str, role: str, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(hours=ACCESS_TOKEN_EXPIRE_HOURS))
    to_encode = {"exp": expire, "sub": user_id, "role": role}
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)

def register_user(role: str, name: str, email: str, password: str, school_id: Optional[str] = None) -> User:
    if User.objects(email=email).first():
        raise HTTPException(status_code=400, detail="Email already registered")
    user = User(name=name, email=email, hashed_password=get_password_hash(password),
                role=role, school_id=school_id)
    user.save()
    return user

def authenticate(role: str, email: str, password: str) -> User:
    user = User.objects(email=email, role=role).first()
    if not user or not verify_password(password, user.hashed_password):
        raise HTTPException(status_code=400, detail="Incorrect email or password")
    return user

def login_response(user: User) -> JSONResponse:
    access_token = create_access_token(str(user.id), user.role)
    response = JSONResponse({"access_token": access_token, "token_type": "bearer"})
    response.set_cookie(
        key="access_token",
        value=access_token,
        httponly=True,
        secure=False,
        samesite="lax"
    )
    return response

access_token_cookie = APIKeyCookie(
    name="access_token",
    auto_error=False
)

async def get_current_user(
    request: Request,
    token: str = Depends(access_token_cookie)
):
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated - no access token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired token",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        user_id: str = payload.get("sub")
        if user_id is None or not ObjectId.is_valid(user_id):
            raise credentials_exception
    except JWTError:
        raise credentials_exception

    user = User.objects(id=user_id).first()
    if user is None:
        raise credentials_exception

    return user

async def get_current_teacher(current_user: User = Depends(get_current_user)):
    if current_user.role != "teacher":
        raise HTTPException(status_code=403, detail="Not authorized")
    return current_user

async def get_current_student(current_user: User = Depends(get_current_user)):
    if current_user.role != "student":
        raise HTTPException(status_code=403, detail="Not authorized")
    return current_user
