"""Tests for step planning and automatic replay."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from retrace.git.models import TextRange
from retrace.session.navigation import (
    is_single_file_step,
    plan_next,
    plan_previous,
)
from retrace.session.replay import Replayer
from retrace.session.repository import SessionRepository

from .conftest import make_snapshot, write


class TestSingleFileStep:
    def test_one_source_file(self) -> None:
        assert is_single_file_step(make_snapshot(0, files=("app.py",)))

    def test_terminal_output_disqualifies(self) -> None:
        snapshot = make_snapshot(0, files=("app.py", "terminal-data.txt"))
        assert not is_single_file_step(snapshot)

    def test_custom_terminal_file(self) -> None:
        snapshot = make_snapshot(0, files=("term.log",))
        assert not is_single_file_step(snapshot, "term.log")
        assert is_single_file_step(snapshot)

    def test_several_files(self) -> None:
        assert not is_single_file_step(make_snapshot(0, files=("a.py", "b.py")))
        assert not is_single_file_step(make_snapshot(0, files=()))


class TestPlans:
    @pytest.mark.asyncio
    async def test_plan_next_at_tip(self, five_step_repo: SessionRepository) -> None:
        assert await plan_next(five_step_repo) is None

    @pytest.mark.asyncio
    async def test_plan_next_animates_forward(
        self, five_step_repo: SessionRepository
    ) -> None:
        ids = five_step_repo.projection.ordered_ids
        await five_step_repo.restore(ids[2])

        plan = await plan_next(five_step_repo)

        assert plan is not None
        assert plan.target_id == ids[3]
        assert plan.file_name == "notes.txt"
        assert plan.animated
        assert plan.from_range == TextRange.point(4, 1)
        assert plan.to_range is not None
        assert plan.to_range.start.line == 4

    @pytest.mark.asyncio
    async def test_plan_previous_animates_head_backwards(
        self, five_step_repo: SessionRepository
    ) -> None:
        ids = five_step_repo.projection.ordered_ids

        plan = await plan_previous(five_step_repo)

        assert plan is not None
        assert plan.target_id == ids[3]
        assert plan.to_range == TextRange.point(5, 1)
        assert plan.from_range is not None
        assert plan.from_range.start.line == 5

    @pytest.mark.asyncio
    async def test_plan_previous_at_start(self, five_step_repo: SessionRepository) -> None:
        ids = five_step_repo.projection.ordered_ids
        await five_step_repo.restore(ids[0])
        assert await plan_previous(five_step_repo) is None

    @pytest.mark.asyncio
    async def test_multi_file_step_is_plain_restore(
        self, five_step_repo: SessionRepository, session_dir: Path
    ) -> None:
        write(session_dir / "a.txt", "a\n")
        write(session_dir / "b.txt", "b\n")
        await five_step_repo.save()
        await five_step_repo.previous()

        plan = await plan_next(five_step_repo)

        assert plan is not None
        assert plan.file_name is None
        assert not plan.animated

    @pytest.mark.asyncio
    async def test_planning_does_not_move_head(
        self, five_step_repo: SessionRepository
    ) -> None:
        head = five_step_repo.head
        await plan_previous(five_step_repo)
        assert five_step_repo.head == head


class TestReplayer:
    @pytest.mark.asyncio
    async def test_runs_to_the_end(self, five_step_repo: SessionRepository) -> None:
        ids = five_step_repo.projection.ordered_ids
        await five_step_repo.restore(ids[0])

        steps = await Replayer(five_step_repo, delay=0).run()

        assert steps == 4
        assert five_step_repo.head == ids[-1]

    @pytest.mark.asyncio
    async def test_until(self, five_step_repo: SessionRepository) -> None:
        ids = five_step_repo.projection.ordered_ids
        await five_step_repo.restore(ids[0])

        steps = await Replayer(five_step_repo, delay=0).run(until=ids[2])

        assert steps == 2
        assert five_step_repo.head == ids[2]

    @pytest.mark.asyncio
    async def test_at_tip_takes_no_steps(self, five_step_repo: SessionRepository) -> None:
        assert await Replayer(five_step_repo, delay=0).run() == 0

    @pytest.mark.asyncio
    async def test_stop_keeps_steps_taken(
        self, five_step_repo: SessionRepository
    ) -> None:
        ids = five_step_repo.projection.ordered_ids
        await five_step_repo.restore(ids[0])
        replayer = Replayer(five_step_repo, delay=30)

        task = asyncio.create_task(replayer.run())
        while five_step_repo.head == ids[0]:
            await asyncio.sleep(0.01)
        replayer.stop()
        steps = await asyncio.wait_for(task, timeout=5)

        assert steps == 1
        assert replayer.stopped
        assert five_step_repo.head == ids[1]

    @pytest.mark.asyncio
    async def test_stop_before_first_step(
        self, five_step_repo: SessionRepository
    ) -> None:
        ids = five_step_repo.projection.ordered_ids
        await five_step_repo.restore(ids[0])
        replayer = Replayer(five_step_repo, delay=0)

        task = asyncio.create_task(replayer.run())
        replayer.stop()

        assert await asyncio.wait_for(task, timeout=5) == 0
        assert five_step_repo.head == ids[0]

    @pytest.mark.asyncio
    async def test_reset_allows_another_run(
        self, five_step_repo: SessionRepository
    ) -> None:
        ids = five_step_repo.projection.ordered_ids
        await five_step_repo.restore(ids[0])
        replayer = Replayer(five_step_repo, delay=0)
        replayer.stop()
        assert await replayer.run() == 0

        replayer.reset()

        assert await replayer.run() == 4
        assert five_step_repo.head == ids[-1]
