import os
import tempfile

_TEST_DIR = tempfile.mkdtemp(prefix="expenser-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TEST_DIR, 'app.db')}"
os.environ["ENV"] = "development"
os.environ["ADMIN_EMAILS"] = "admin@example.com"
os.environ["SEED_DEMO_DATA"] = "true"

from datetime import datetime, timezone  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402

from expenser.core.database import build_engine, build_session_factory, init_db  # noqa: E402
from expenser.domain.storage.services import KeyValueStorage  # noqa: E402
from expenser.domain.transactions.schemas import Transaction  # noqa: E402
from expenser.domain.users.schemas import Identity  # noqa: E402

FIXED_NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def storage(anyio_backend, tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'storage.db'}")
    await init_db(engine)
    yield KeyValueStorage(build_session_factory(engine))
    await engine.dispose()


@pytest.fixture
def identity():
    return Identity(
        uid="user-1",
        email="ana@example.com",
        display_name="Ana",
        created_at="2024-01-01T00:00:00Z",
    )


def make_transaction(
    id: str,
    amount: str,
    category: str,
    type: str = "expense",
    date: str = "2024-03-10",
    description: str = "",
    created_at: datetime = FIXED_NOW,
) -> Transaction:
    return Transaction(
        id=id,
        user_id="user-1",
        amount=Decimal(amount),
        description=description or f"{category} {id}",
        category=category,
        date=date,
        type=type,
        created_at=created_at,
        updated_at=created_at,
    )


@pytest.fixture
def sample_transactions():
    """Salary, lunch and an electricity bill."""
    return [
        make_transaction("1", "3000.00", "Income", type="income", description="Monthly salary"),
        make_transaction("2", "25.50", "Food & Dining", description="Lunch at restaurant"),
        make_transaction("3", "120.00", "Bills & Utilities", date="2024-03-09", description="Electricity bill"),
    ]
