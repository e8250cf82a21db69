import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from backoffice import config
from backoffice.db import Base, engine

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# 1) Импортируем все модели до create_all(),
#    чтобы SQLAlchemy знал про классы и связи
import backoffice.models  # noqa: F401,E402

from sqlalchemy.orm import configure_mappers  # noqa: E402
configure_mappers()

# 2) Создаём таблицы
Base.metadata.create_all(bind=engine)

from backoffice.middleware.rbac import AdminAuthMiddleware  # noqa: E402
from backoffice.services.errors import ServiceError  # noqa: E402


# ==== FastAPI app ====
app = FastAPI(title=config.APP_NAME)

# Проверка админ-доступа (добавляется первой: значит, работает внутри сессии)
app.add_middleware(AdminAuthMiddleware)
app.add_middleware(SessionMiddleware, secret_key=config.SECRET_KEY)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse({"success": False, "message": exc.message}, status_code=exc.status_code)


# ==== Routers ====
from backoffice.routers import auth as auth_router  # noqa: E402
from backoffice.routers import admin_orders, admin_domains, admin_affiliates  # noqa: E402

app.include_router(auth_router.router)
app.include_router(admin_orders.router)
app.include_router(admin_domains.router)
app.include_router(admin_affiliates.router)


@app.get("/health")
def health():
    return {"status": "ok", "app": config.APP_NAME}
