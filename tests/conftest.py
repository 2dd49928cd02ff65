"""Shared fixtures: a temporary SQLite database and fake ledger adapters."""

from __future__ import annotations

import asyncio
import tempfile
from pathlib import Path

import pytest
import pytest_asyncio

from datadao.curation.errors import LedgerError, LedgerUnavailable
from datadao.curation.models import Submission, SubmissionStatus, User
from datadao.database import DatabaseManager
from datadao.store import SQLSubmissionStore


# ---------------------------------------------------------------------------
# Fake ledgers
# ---------------------------------------------------------------------------

class FakePrimaryLedger:
    """Records approvals; can be told to fail or hang."""

    def __init__(self, fail: bool = False, delay: float = 0.0):
        self.fail = fail
        self.delay = delay
        self.call_count = 0
        self.approvals: list[str] = []

    async def record_approval(self, submission_id: str) -> str:
        self.call_count += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise LedgerError("primary ledger rejected approval")
        self.approvals.append(submission_id)
        return f"approval-tx-{self.call_count}"


class FakeTokenLedger:
    """Records mints; ``fail`` makes every mint raise."""

    def __init__(self, fail: bool = False, delay: float = 0.0):
        self.fail = fail
        self.delay = delay
        self.call_count = 0
        self.mints: list[tuple[str, str, str]] = []

    async def mint(self, address: str, amount: str, reason: str) -> str:
        self.call_count += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise LedgerUnavailable("token ledger down")
        self.mints.append((address, amount, reason))
        return f"mint-tx-{self.call_count}"


class FakeSecondaryLedger:
    """Records reputation increases.

    ``failures`` is the number of calls that fail before calls succeed
    (-1 fails forever).
    """

    def __init__(self, failures: int = 0, delay: float = 0.0):
        self.failures = failures
        self.delay = delay
        self.call_count = 0
        self.increases: list[tuple[str, int, str]] = []

    async def increase_reputation(self, address: str, delta: int, reason: str) -> str:
        self.call_count += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.failures != 0:
            if self.failures > 0:
                self.failures -= 1
            raise RuntimeError("secondary ledger rpc error")
        self.increases.append((address, delta, reason))
        return f"relay-tx-{self.call_count}"


# ---------------------------------------------------------------------------
# Database + store
# ---------------------------------------------------------------------------

@pytest.fixture
def tmp_dir():
    with tempfile.TemporaryDirectory() as d:
        yield d


@pytest_asyncio.fixture
async def database(tmp_dir):
    db = DatabaseManager(f"sqlite+aiosqlite:///{Path(tmp_dir) / 'test.db'}")
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
def store(database):
    return SQLSubmissionStore(database)


@pytest.fixture
def primary_ledger():
    return FakePrimaryLedger()


@pytest.fixture
def token_ledger():
    return FakeTokenLedger()


@pytest.fixture
def secondary_ledger():
    return FakeSecondaryLedger()


# ---------------------------------------------------------------------------
# Seeding helpers
# ---------------------------------------------------------------------------

async def add_user(
    store,
    user_id: str = "alice",
    primary_address: str | None = "0xprimary-alice",
    secondary_address: str | None = "0xsecondary-alice",
    reputation: int = 0,
) -> User:
    user = User(
        id=user_id,
        primary_address=primary_address,
        secondary_address=secondary_address,
        reputation=reputation,
    )
    await store.add_user(user)
    return user


async def add_submission(
    store,
    submission_id: str = "sub-1",
    user_id: str = "alice",
    quality_score: int | None = None,
    status: SubmissionStatus = SubmissionStatus.PENDING,
    metadata: dict | None = None,
) -> Submission:
    return await store.add_submission(Submission(
        id=submission_id,
        user_id=user_id,
        task_id="task-1",
        result_hash=f"hash-{submission_id}",
        storage_uri=f"ipfs://{submission_id}",
        status=status,
        quality_score=quality_score,
        metadata=metadata or {},
    ))
