from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse
from fastapi import Request

from backoffice.utils.enums import UserRole


class AdminAuthMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        path = request.url.path

        # проверяем только разделы админки
        if path == "/admin" or path.startswith("/admin/"):
            role = (request.session.get("role") or "").strip().lower()
            if role != UserRole.ADMIN.value or not request.session.get("user_id"):
                return JSONResponse(
                    {"success": False, "message": "Authentication required."},
                    status_code=401,
                )

        return await call_next(request)
