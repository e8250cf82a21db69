from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from backoffice.db import get_db
from backoffice.services.site_settings import SiteSettings, load_site_settings


def get_admin_id(request: Request) -> Optional[int]:
    """id админа из сессии (доступ уже проверен в AdminAuthMiddleware)"""
    return request.session.get("user_id")


def get_site_settings(db: Session = Depends(get_db)) -> SiteSettings:
    return load_site_settings(db)
