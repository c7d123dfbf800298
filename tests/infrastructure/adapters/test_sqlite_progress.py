import sqlite3

import pytest

from renshu.domain.models import ItemKey, PracticeMode, SchedulingState, SessionScope
from renshu.infrastructure.adapters.sqlite_progress import SqliteProgressRepository


@pytest.fixture
def repo(tmp_path):
    return SqliteProgressRepository(tmp_path / "nested" / "progress.db")


@pytest.mark.asyncio
async def test_empty_database(repo, now):
    assert await repo.get_records(PracticeMode.READINGS) == []
    assert await repo.get_due_records(PracticeMode.READINGS, now) == []
    assert repo.db_path.exists()


@pytest.mark.asyncio
async def test_persist_and_load(repo, now, reviewed_state):
    key = ItemKey.kanji("大")
    scheduling = reviewed_state(-1)

    await repo.persist(key, scheduling, SessionScope.MODULE, PracticeMode.READINGS)
    records = await repo.get_records(PracticeMode.READINGS)

    assert len(records) == 1
    assert records[0].key == key
    assert records[0].mode == PracticeMode.READINGS
    assert records[0].scheduling == scheduling
    assert await repo.get_records(PracticeMode.KANA) == []


@pytest.mark.asyncio
async def test_persist_replaces_existing_row(repo, reviewed_state):
    key = ItemKey.kanji("大")
    await repo.persist(key, reviewed_state(1), SessionScope.MODULE, PracticeMode.READINGS)
    await repo.persist(key, reviewed_state(5), SessionScope.REVIEW, PracticeMode.READINGS)

    records = await repo.get_records(PracticeMode.READINGS)

    assert len(records) == 1
    assert records[0].scheduling == reviewed_state(5)


@pytest.mark.asyncio
async def test_due_records_sorted_and_filtered(repo, now, reviewed_state):
    mode = PracticeMode.READINGS
    await repo.persist(ItemKey.vocabulary("later"), reviewed_state(3), SessionScope.REVIEW, mode)
    await repo.persist(ItemKey.vocabulary("recent"), reviewed_state(-1), SessionScope.REVIEW, mode)
    await repo.persist(ItemKey.vocabulary("oldest"), reviewed_state(-5), SessionScope.REVIEW, mode)
    await repo.persist(ItemKey.vocabulary("new"), SchedulingState(), SessionScope.MODULE, mode)

    due = await repo.get_due_records(mode, now)

    assert [r.key.slug for r in due] == ["oldest", "recent"]


@pytest.mark.asyncio
async def test_unreadable_rows_are_skipped(repo, reviewed_state):
    await repo.persist(ItemKey.kanji("ok"), reviewed_state(1), SessionScope.MODULE, PracticeMode.READINGS)
    with sqlite3.connect(repo.db_path) as conn:
        conn.execute(
            "INSERT INTO progress VALUES ('bogus', 'readings', 'kanji', 'module', NULL, '{}', 'x')"
        )

    records = await repo.get_records(PracticeMode.READINGS)

    assert [str(r.key) for r in records] == ["kanji:ok"]
