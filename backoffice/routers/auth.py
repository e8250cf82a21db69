import logging
import time

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from backoffice.db import get_db
from backoffice.models.user import User
from backoffice.schemas import LoginIn
from backoffice.services.activity import log_activity
from backoffice.utils.enums import UserRole
from backoffice.utils.security import verify_password

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])

# 🔹 Rate limit config
MAX_ATTEMPTS = 5          # максимум попыток
BLOCK_TIME = 60           # блокировка на 60 секунд
login_attempts = {}       # { "ip": {"count": int, "last": timestamp} }


def check_rate_limit(ip: str) -> bool:
    """Проверка лимита по IP"""
    now = time.time()
    data = login_attempts.get(ip)

    if not data:
        return True

    # если ещё идёт блокировка
    if data["count"] >= MAX_ATTEMPTS and now - data["last"] < BLOCK_TIME:
        return False

    return True


def add_attempt(ip: str):
    """Запись неудачной попытки"""
    now = time.time()
    attempts = login_attempts.get(ip)
    if not attempts or now - attempts["last"] > BLOCK_TIME:
        # окно истекло: считаем заново
        login_attempts[ip] = {"count": 1, "last": now}
    else:
        attempts["count"] += 1
        attempts["last"] = now


def reset_attempts(ip: str):
    login_attempts.pop(ip, None)


@router.post("/login")
def login(payload: LoginIn, request: Request, db: Session = Depends(get_db)):
    client_ip = request.client.host if request.client else "unknown"

    if not check_rate_limit(client_ip):
        logger.warning("Login blocked for %s: too many attempts", client_ip)
        return JSONResponse(
            {"success": False, "message": "Too many login attempts. Please wait 1 minute."},
            status_code=429,
        )

    email = (payload.email or "").strip().lower()
    user = db.query(User).filter(User.email == email).first()
    if not user or not verify_password(payload.password, user.password_hash):
        add_attempt(client_ip)
        return JSONResponse({"success": False, "message": "Invalid email or password."}, status_code=401)

    role_clean = (user.role or "").strip().lower()
    if role_clean != UserRole.ADMIN.value or user.status != "active":
        add_attempt(client_ip)
        return JSONResponse({"success": False, "message": "Access denied."}, status_code=403)

    reset_attempts(client_ip)

    request.session["user_id"] = user.id
    request.session["role"] = role_clean
    logger.info("Admin #%s logged in from %s", user.id, client_ip)
    log_activity(db, "admin_login", "Admin logged in", user_id=user.id, request=request)

    return {"success": True, "message": "Logged in.", "user_id": user.id}


@router.get("/logout")
def logout(request: Request):
    request.session.clear()
    return {"success": True, "message": "Logged out."}


@router.get("/whoami")
def whoami(request: Request):
    return {"user_id": request.session.get("user_id"), "role": request.session.get("role")}
