"""Test configuration."""
import os
from collections.abc import AsyncIterator, Callable, Iterator
from pathlib import Path
from typing import Any

from alembic import command
from alembic.config import Config
import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

# --- Default env for the app under test
os.environ.setdefault("DATABASE_URL", "sqlite:///./paygate_test.db")
os.environ.setdefault("ADMIN_API_KEY", "test-admin-key")
os.environ.setdefault("PAYGATE_ENV", "test")

from paygate.main import app  # noqa: E402
from paygate.config import (  # noqa: E402
    ChipInConfig,
    GatewaysConfig,
    ManualConfig,
    Settings,
    ToyyibpayConfig,
)
from paygate.db import get_db  # noqa: E402
from paygate.gateways import GatewayRegistry, build_registry  # noqa: E402
from paygate.services.payments import PaymentService, get_payment_service  # noqa: E402
from paygate.services.storage import LocalProofStorage, ProofFile  # noqa: E402

DB_PATH = Path("./paygate_test.db")
BASE_URL = "https://shop.test"


def _run_migrations() -> None:
    cfg = Config(str(Path(__file__).resolve().parents[1] / "alembic.ini"))
    cfg.set_main_option("sqlalchemy.url", os.environ["DATABASE_URL"])
    command.upgrade(cfg, "head")


# --- (1) Reset the DB file at session start
if DB_PATH.exists():
    DB_PATH.unlink()

engine = create_engine(
    os.environ["DATABASE_URL"],
    connect_args={"check_same_thread": False},
    future=True,
)
TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False,
                                   future=True, expire_on_commit=False)

# --- (2) Build the schema through Alembic only
_run_migrations()


class ProviderStub:
    """``httpx.MockTransport`` handler keyed by ``(method, path)``."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.routes: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}

    def add(self, method: str, path: str, *, status_code: int = 200, json: Any = None, text: str | None = None) -> None:
        def _respond(request: httpx.Request) -> httpx.Response:
            if text is not None:
                return httpx.Response(status_code, text=text)
            return httpx.Response(status_code, json=json)

        self.routes[(method.upper(), path)] = _respond

    def fail(self, method: str, path: str, exc: Exception) -> None:
        def _raise(request: httpx.Request) -> httpx.Response:
            raise exc

        self.routes[(method.upper(), path)] = _raise

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json={"message": "not stubbed"})
        return handler(request)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def db_session() -> Iterator[Session]:
    connection = engine.connect()
    transaction = connection.begin()
    session = TestingSessionLocal(bind=connection)
    try:
        yield session
    finally:
        session.close()
        transaction.rollback()
        connection.close()


@pytest.fixture
def provider() -> ProviderStub:
    return ProviderStub()


@pytest.fixture
def http_client(provider: ProviderStub) -> Iterator[httpx.Client]:
    with httpx.Client(transport=httpx.MockTransport(provider)) as client:
        yield client


@pytest.fixture
def gateway_settings(tmp_path: Path) -> Settings:
    return Settings(
        base_url=BASE_URL,
        currency="MYR",
        default_gateway="manual",
        gateways=GatewaysConfig(
            toyyibpay=ToyyibpayConfig(enabled=True, secret_key="tp-secret", category_code="cat-001"),
            chipin=ChipInConfig(enabled=True, brand_id="brand-001", secret_key="chip-secret"),
            manual=ManualConfig(storage_root=str(tmp_path), max_file_size=1),
        ),
    )


@pytest.fixture
def proof_storage(tmp_path: Path) -> LocalProofStorage:
    return LocalProofStorage(tmp_path)


@pytest.fixture
def registry(
    gateway_settings: Settings, http_client: httpx.Client, proof_storage: LocalProofStorage
) -> GatewayRegistry:
    return build_registry(gateway_settings, http_client=http_client, storage=proof_storage)


@pytest.fixture
def payment_service(registry: GatewayRegistry) -> PaymentService:
    return PaymentService(registry, default_gateway="manual")


@pytest.fixture(autouse=True)
def override_dependencies(db_session: Session, request: pytest.FixtureRequest) -> Iterator[None]:
    def _get_db() -> Iterator[Session]:
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    if "client" in request.fixturenames:
        service = request.getfixturevalue("payment_service")
        app.dependency_overrides[get_payment_service] = lambda: service
    yield
    app.dependency_overrides.pop(get_db, None)
    app.dependency_overrides.pop(get_payment_service, None)


@pytest.fixture
async def client() -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as async_client:
        yield async_client


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {os.environ['ADMIN_API_KEY']}"}


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def make_proof() -> Callable[..., ProofFile]:
    """Factory for in-memory proof files of a given size."""

    def _factory(filename: str = "receipt.png", size: int = 128) -> ProofFile:
        return ProofFile(filename=filename, content=b"x" * size, content_type="application/octet-stream")

    return _factory
