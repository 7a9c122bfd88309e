"""
PromptResult upsert under concurrent writers.
Uses a file database so each session gets its own connection.
"""

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine

from cvextract.core.database import init_db, session_factory
from cvextract.models.prompt import PromptResult
from cvextract.repositories import PromptsRepository


@pytest.fixture
async def file_engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'cvextract.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


async def _rows(engine) -> list[str]:
    async with session_factory(engine)() as session:
        result = await session.execute(select(PromptResult.result))
        return list(result.scalars().all())


async def test_concurrent_writer_does_not_break_upsert(file_engine, monkeypatch):
    factory = session_factory(file_engine)
    async with factory() as first, factory() as second:
        prompt = await PromptsRepository(first).get_active_by_name("extract-formations")

        # The other request commits its result right before this one writes.
        execute = first.execute
        raced = []

        async def execute_after_other_writer(statement, *args, **kwargs):
            if not raced:
                raced.append(True)
                await PromptsRepository(second).save_result("user-1", prompt.id, "first")
            return await execute(statement, *args, **kwargs)

        monkeypatch.setattr(first, "execute", execute_after_other_writer)

        row = await PromptsRepository(first).save_result("user-1", prompt.id, "second")

    assert raced
    assert row.result == "second"
    assert await _rows(file_engine) == ["second"]


async def test_sessions_alternate_last_write_wins(file_engine):
    factory = session_factory(file_engine)
    async with factory() as first, factory() as second:
        prompt = await PromptsRepository(first).get_active_by_name("extract-parcours-professionnel")

        await PromptsRepository(first).save_result("user-1", prompt.id, "a")
        await PromptsRepository(second).save_result("user-1", prompt.id, "b")
        await PromptsRepository(first).save_result("user-1", prompt.id, "c")

        results = await PromptsRepository(second).list_results("user-1")

    assert [r.result for r in results] == ["c"]
    assert await _rows(file_engine) == ["c"]
