from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from brand_monitor.core.config import settings

# Override settings for tests: in-memory DB, no real provider keys
settings.database_url = "sqlite+aiosqlite:///:memory:"
settings.session_secret_key = "test-secret-key-that-is-at-least-32-bytes-long"
settings.admin_password = "test-admin-password"
settings.app_env = "development"
settings.brand_name = "Arianee"
for _key in (
    "openai_api_key",
    "google_ai_api_key",
    "mistral_api_key",
    "xai_api_key",
    "anthropic_api_key",
    "perplexity_api_key",
):
    setattr(settings, _key, "")

import brand_monitor.models  # noqa: E402, F401
from brand_monitor.core.rate_limit import limiter  # noqa: E402
from brand_monitor.core.security import SESSION_COOKIE_NAME, create_session_token  # noqa: E402
from brand_monitor.db.base import Base  # noqa: E402
from brand_monitor.db.session import get_db  # noqa: E402
from brand_monitor.main import app  # noqa: E402
from brand_monitor.models.monitor_query import MonitorQuery  # noqa: E402
from brand_monitor.monitor.analyzer import MentionAnalyzer  # noqa: E402
from brand_monitor.monitor.fanout import FanOutCoordinator  # noqa: E402
from brand_monitor.monitor.judge import JudgeError, JudgeReply  # noqa: E402
from brand_monitor.monitor.orchestrator import RunOrchestrator  # noqa: E402
from brand_monitor.monitor.recommendations import RecommendationGenerator  # noqa: E402
from brand_monitor.monitor.types import Provider  # noqa: E402
from brand_monitor.providers.base import BaseProviderAdapter, ProviderError  # noqa: E402

limiter.enabled = False

TEST_WEIGHTS = {
    Provider.CHATGPT: 0.60,
    Provider.GEMINI: 0.15,
    Provider.PERPLEXITY: 0.08,
    Provider.CLAUDE: 0.07,
    Provider.GROK: 0.05,
    Provider.MISTRAL: 0.05,
}


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """Fresh in-memory SQLite database per test. StaticPool keeps one shared connection."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    yield factory

    app.dependency_overrides.clear()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
async def admin_client(client: AsyncClient) -> AsyncClient:
    """Client carrying a valid admin session cookie."""
    client.cookies.set(SESSION_COOKIE_NAME, create_session_token())
    return client


@pytest.fixture
async def queries(db: AsyncSession) -> list[MonitorQuery]:
    """Three active queries across two topics plus one inactive query."""
    rows = [
        MonitorQuery(
            id="q1",
            query_text="Who are the leading Digital Product Passport providers?",
            topic="providers",
            topic_label="DPP providers",
            sort_order=1,
        ),
        MonitorQuery(
            id="q2",
            query_text="Which companies help brands comply with the ESPR regulation?",
            topic="regulation",
            topic_label="Regulation",
            sort_order=2,
        ),
        MonitorQuery(
            id="q3",
            query_text="Best blockchain platforms for product authentication?",
            topic="providers",
            topic_label="DPP providers",
            sort_order=3,
        ),
        MonitorQuery(
            id="q-off",
            query_text="Retired question",
            topic="industry",
            topic_label="Industry",
            sort_order=4,
            is_active=False,
        ),
    ]
    db.add_all(rows)
    await db.commit()
    return rows[:3]


# ---------------------------------------------------------------------------
# Pipeline stubs
# ---------------------------------------------------------------------------


class StubAdapter(BaseProviderAdapter):
    """Adapter answering from canned text (or failing with a canned error)."""

    def __init__(self, provider: Provider, text: str | None = None, error: str | None = None):
        self.provider = provider
        super().__init__(api_key="test-key", base_delay=0)
        self.text = text
        self.error = error
        self.prompts: list[str] = []

    async def _send(self, prompt: str) -> str | None:
        self.prompts.append(prompt)
        if self.error:
            raise ProviderError(self.error)
        return self.text


class StubJudge:
    """Judge client returning a canned reply; ``reply=None`` simulates an outage."""

    def __init__(self, reply: str | None = None, output_tokens: int = 0, model: str = "judge-test"):
        self.reply = reply
        self.output_tokens = output_tokens
        self.model = model
        self.configured = True
        self.prompts: list[str] = []

    async def complete(self, prompt: str, max_tokens: int) -> JudgeReply:
        self.prompts.append(prompt)
        if self.reply is None:
            raise JudgeError("Judge HTTP 529: overloaded")
        return JudgeReply(text=self.reply, output_tokens=self.output_tokens)


@pytest.fixture
def stub_adapter():
    return StubAdapter


@pytest.fixture
def stub_judge():
    return StubJudge


@pytest.fixture
def make_orchestrator():
    """Build a RunOrchestrator over stub adapters and stub judges.

    Providers absent from *texts* and *errors* return no text, which the
    adapter reports as an error-only response.
    """

    def _make(
        texts: dict[Provider, str] | None = None,
        errors: dict[Provider, str] | None = None,
        analysis_reply: str | None = None,
        recommendation_reply: str | None = "[]",
        **kwargs,
    ) -> RunOrchestrator:
        texts = texts or {}
        errors = errors or {}
        adapters = [StubAdapter(p, text=texts.get(p), error=errors.get(p)) for p in Provider]
        return RunOrchestrator(
            coordinator=FanOutCoordinator(adapters),
            analyzer=MentionAnalyzer(StubJudge(analysis_reply), brand="Arianee"),
            recommender=RecommendationGenerator(
                StubJudge(recommendation_reply, output_tokens=321, model="claude-sonnet-4-6"),
                brand="Arianee",
            ),
            weights=TEST_WEIGHTS,
            **kwargs,
        )

    return _make
