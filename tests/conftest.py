# tests/conftest.py
import os

# до импорта приложения: create_all при импорте уйдёт в одноразовую in-memory базу
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["MAIL_API_KEY"] = ""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from backoffice.main import app
from backoffice.db import Base, get_db
from backoffice.models import (
    Affiliate,
    Domain,
    OrderItem,
    PendingOrder,
    Template,
    Tool,
    User,
    WithdrawalRequest,
)
from backoffice.notify.mailer import get_mailer
from backoffice.routers import auth as auth_router
from backoffice.services.site_settings import SiteSettings
from backoffice.utils.enums import AffiliateStatus, DomainStatus, OrderStatus, ProductType, UserRole
from backoffice.utils.security import hash_password

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "admin-pass"


# --- Test Database Setup ---
@pytest.fixture(scope="function")
def engine():
    """Своя in-memory база на каждый тест; StaticPool: одно соединение на все сессии."""
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def settings():
    return SiteSettings(
        site_name="Test Shop",
        affiliate_commission_rate=Decimal("0.30"),
        customer_discount_rate=Decimal("0.20"),
    )


@pytest.fixture
def mailer():
    return MagicMock()


# --- Factories ---
class Factory:
    def __init__(self, db):
        self.db = db
        self._seq = 0

    def _next(self):
        self._seq += 1
        return self._seq

    def _save(self, obj):
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def template(self, name="Shop", price="20000"):
        n = self._next()
        return self._save(Template(name=name, slug=f"{name.lower()}-{n}", price=Decimal(price)))

    def tool(self, name="License", price="1500"):
        n = self._next()
        return self._save(Tool(name=name, slug=f"{name.lower()}-{n}", price=Decimal(price)))

    def domain(self, template, name=None, status=DomainStatus.AVAILABLE.value, assigned_order_id=None):
        name = name or f"site{self._next()}.com"
        return self._save(Domain(
            template_id=template.id,
            domain_name=name,
            status=status,
            assigned_order_id=assigned_order_id,
        ))

    def order(self, status=OrderStatus.PENDING.value, **kw):
        kw.setdefault("customer_name", "John Doe")
        kw.setdefault("customer_email", "john@example.com")
        for key in ("original_price", "discount_amount", "final_amount"):
            if kw.get(key) is not None:
                kw[key] = Decimal(str(kw[key]))
        return self._save(PendingOrder(status=status, **kw))

    def item(self, order, product, quantity=1, discount="0", domain_id=None):
        product_type = ProductType.TEMPLATE.value if isinstance(product, Template) else ProductType.TOOL.value
        unit_price = Decimal(str(product.price))
        discount = Decimal(discount)
        meta = {"category": product_type}
        if domain_id:
            meta["domain_id"] = domain_id
        return self._save(OrderItem(
            pending_order_id=order.id,
            product_type=product_type,
            product_id=product.id,
            quantity=quantity,
            unit_price=unit_price,
            discount_amount=discount,
            final_amount=unit_price * quantity - discount,
            item_metadata=meta,
        ))

    def user(self, email=None, role=UserRole.AFFILIATE.value, password=None):
        email = email or f"user{self._next()}@example.com"
        # настоящий bcrypt только там, где проверяется логин
        password_hash = hash_password(password) if password else "not-a-hash"
        return self._save(User(name=email.split("@")[0], email=email, password_hash=password_hash, role=role))

    def affiliate(self, code="PARTNER1", status=AffiliateStatus.ACTIVE.value, rate=None,
                  earned="0", pending="0", paid="0"):
        user = self.user()
        return self._save(Affiliate(
            user_id=user.id,
            code=code,
            status=status,
            custom_commission_rate=Decimal(rate) if rate is not None else None,
            commission_earned=Decimal(earned),
            commission_pending=Decimal(pending),
            commission_paid=Decimal(paid),
            total_clicks=0,
            total_sales=0,
        ))

    def withdrawal(self, affiliate, amount, status="pending"):
        return self._save(WithdrawalRequest(
            affiliate_id=affiliate.id,
            amount=Decimal(amount),
            status=status,
            bank_details_json={"bank_name": "GTBank", "account_number": "0123456789", "account_name": "Partner"},
        ))


@pytest.fixture
def factory(db):
    return Factory(db)


# --- Test Client Fixtures ---
@pytest.fixture
def anon_client(db, mailer):
    """TestClient без логина; база и почта подменены."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mailer] = lambda: mailer
    auth_router.login_attempts.clear()

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()
    auth_router.login_attempts.clear()


@pytest.fixture
def admin(factory):
    return factory.user(email=ADMIN_EMAIL, role=UserRole.ADMIN.value, password=ADMIN_PASSWORD)


@pytest.fixture
def client(anon_client, admin):
    resp = anon_client.post("/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert resp.status_code == 200, resp.text
    return anon_client
