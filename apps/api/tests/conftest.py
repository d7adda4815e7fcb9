from functools import lru_cache
from typing import Any, Dict, Iterable, Optional, Tuple
import uuid

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.future import select

from database import Base, get_db
from main import app
from models.admin_user import AdminUser
from models.capability import Capability
from models.officer import Officer
from models.rate_plan import PlanCapability, RatePlan
from models.registration import OfficerRegistration
from routers import rate_limit
from services.crypto import encrypt_secret, hash_password
from services.session_token import create_session_token


OFFICER_PASSWORD = "officer-pass-123"
ADMIN_PASSWORD = "admin-pass-123"


@lru_cache(maxsize=None)
def stored_password(password: str) -> str:
    return hash_password(password)


def auth_header(subject_id: str, role: str = "officer", email: Optional[str] = None) -> Dict[str, str]:
    token = create_session_token(subject_id, role=role, email=email)["token"]
    return {"Authorization": f"Bearer {token}"}


def mock_vendor(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class PortalSeed:
    """Writes fixture rows straight to storage, bypassing the admin services."""

    officer_password = OFFICER_PASSWORD
    admin_password = ADMIN_PASSWORD

    def __init__(self, session_maker: async_sessionmaker):
        self.session_maker = session_maker

    async def _add(self, *rows: Any) -> None:
        async with self.session_maker() as session:
            session.add_all(rows)
            await session.commit()

    async def capability(
        self,
        key: str = "vehicle_rc_search",
        *,
        name: Optional[str] = None,
        api_key: Optional[str] = "signzy-token",
        key_status: str = "Active",
        type: str = "PRO",
        default_credit_charge: int = 1,
        service_provider: str = "Signzy",
    ) -> str:
        capability_id = str(uuid.uuid4())
        await self._add(
            Capability(
                id=capability_id,
                key=key,
                name=name or key.replace("_", " ").title(),
                service_provider=service_provider,
                type=type,
                api_key_encrypted=encrypt_secret(api_key) if api_key else None,
                key_status=key_status,
                default_credit_charge=default_credit_charge,
            )
        )
        return capability_id

    async def plan(
        self,
        *,
        plan_name: Optional[str] = None,
        default_credits: int = 50,
        topup_allowed: bool = True,
        links: Iterable[Tuple[str, bool, Optional[int]]] = (),
    ) -> str:
        """``links`` are ``(capability_id, enabled, credit_cost)`` tuples."""
        plan_id = str(uuid.uuid4())
        rows = [
            RatePlan(
                id=plan_id,
                plan_name=plan_name or f"Plan {plan_id[:8]}",
                user_type="Police",
                default_credits=default_credits,
                topup_allowed=topup_allowed,
            )
        ]
        await self._add(*rows)
        await self._add(
            *[
                PlanCapability(
                    id=str(uuid.uuid4()),
                    plan_id=plan_id,
                    capability_id=capability_id,
                    enabled=enabled,
                    credit_cost=credit_cost,
                )
                for capability_id, enabled, credit_cost in links
            ]
        )
        return plan_id

    async def officer(
        self,
        *,
        plan_id: Optional[str] = None,
        credits: int = 10,
        status: str = "Active",
        email: Optional[str] = None,
        mobile: Optional[str] = None,
        name: str = "Inspector Rao",
    ) -> str:
        officer_id = str(uuid.uuid4())
        await self._add(
            Officer(
                id=officer_id,
                name=name,
                email=email or f"{officer_id[:8]}@police.example",
                mobile=mobile or str(uuid.uuid4().int)[:10],
                password_hash=stored_password(OFFICER_PASSWORD),
                status=status,
                plan_id=plan_id,
                credits_remaining=credits,
                total_credits=credits,
            )
        )
        return officer_id

    async def admin(self, email: str = "admin@portal.example") -> str:
        admin_id = str(uuid.uuid4())
        await self._add(
            AdminUser(id=admin_id, email=email, name="Admin", password_hash=stored_password(ADMIN_PASSWORD))
        )
        return admin_id

    async def registration(self, **overrides: Any) -> str:
        registration_id = str(uuid.uuid4())
        fields = {
            "name": "SI Meera Nair",
            "email": "meera.nair@police.example",
            "mobile": "9876500011",
            "station": "Kochi Central",
            "department": "Cyber Cell",
            "rank": "Sub-Inspector",
        }
        fields.update(overrides)
        await self._add(OfficerRegistration(id=registration_id, status="pending", **fields))
        return registration_id

    async def get(self, model: Any, row_id: str) -> Any:
        async with self.session_maker() as session:
            return (await session.execute(select(model).where(model.id == row_id))).scalar_one_or_none()

    async def rows(self, model: Any, **filters: Any) -> list:
        async with self.session_maker() as session:
            statement = select(model)
            for name, value in filters.items():
                statement = statement.where(getattr(model, name) == value)
            return list((await session.execute(statement)).scalars().all())

    async def count(self, model: Any, **filters: Any) -> int:
        async with self.session_maker() as session:
            statement = select(func.count()).select_from(model)
            for name, value in filters.items():
                statement = statement.where(getattr(model, name) == value)
            return int((await session.execute(statement)).scalar() or 0)

    async def balance(self, officer_id: str) -> int:
        officer = await self.get(Officer, officer_id)
        return int(officer.credits_remaining)


@pytest.fixture(autouse=True)
def reset_local_rate_limit_windows():
    """Keep in-memory rate-limit state isolated between tests."""
    previous = getattr(app.state, "disable_rate_limits", False)
    app.state.disable_rate_limits = True
    rate_limit.reset_local_windows()
    yield
    rate_limit.reset_local_windows()
    app.state.disable_rate_limits = previous


@pytest_asyncio.fixture
async def session_maker(tmp_path):
    db_path = tmp_path / "portal.db"
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", connect_args={"timeout": 30})
    maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield maker
    await engine.dispose()


@pytest.fixture
def seed(session_maker):
    return PortalSeed(session_maker)


@pytest_asyncio.fixture
async def portal_client(session_maker):
    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.pop(get_db, None)
    app.state.vendor_client = None


@pytest.fixture
def headers_for():
    return auth_header


@pytest_asyncio.fixture
async def vendor():
    """Factory for vendor clients backed by httpx.MockTransport handlers."""
    clients = []

    def _factory(handler):
        client = mock_vendor(handler)
        clients.append(client)
        return client

    yield _factory
    for client in clients:
        await client.aclose()
