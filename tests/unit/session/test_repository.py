"""Tests for SessionRepository against real temporary git repositories."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest
import structlog
from git import Repo

from retrace.exceptions import InternalConsistencyError, SessionNotReadyError
from retrace.git.models import Position, TextRange
from retrace.session.feed import EntriesChanged, FullRefresh, Notification
from retrace.session.projection import Projection
from retrace.session.repository import SessionRepository
from retrace.session.terminal import TerminalRecorder

from .conftest import write


def _active_branch(path: Path) -> str | None:
    repo = Repo(path)
    if repo.head.is_detached:
        return None
    return repo.active_branch.name


# =============================================================================
# Initialization
# =============================================================================


class TestInitialize:
    @pytest.mark.asyncio
    async def test_empty_directory(self, repo: SessionRepository, session_dir: Path) -> None:
        projection = repo.projection

        assert (session_dir / ".git").is_dir()
        assert _active_branch(session_dir) == "demo"
        assert projection.branch == "demo"
        assert projection.ordered_ids == ()
        assert projection.head is None
        assert projection.branch_head is None

    @pytest.mark.asyncio
    async def test_not_ready_before_initialize(self, session_dir: Path) -> None:
        repo = SessionRepository(session_dir)
        assert not repo.is_ready
        with pytest.raises(SessionNotReadyError):
            _ = repo.projection

    @pytest.mark.asyncio
    async def test_reopen_loads_history_and_sections(
        self, five_step_repo: SessionRepository, session_dir: Path
    ) -> None:
        ids = five_step_repo.projection.ordered_ids
        await five_step_repo.create_annotation(ids[1], "Part 1")

        reopened = await SessionRepository.open(session_dir, "demo")

        assert reopened.projection.ordered_ids == ids
        assert reopened.head == ids[-1]
        assert reopened.get_annotation(ids[1]) is not None
        assert reopened.section_commit_count(ids[1]) == 4

    @pytest.mark.asyncio
    async def test_keep_checkout_of_existing_branch(
        self, five_step_repo: SessionRepository, session_dir: Path
    ) -> None:
        ids = five_step_repo.projection.ordered_ids
        await five_step_repo.restore(ids[2])

        reopened = await SessionRepository.open(
            session_dir, "demo", checkout_existing=False
        )

        assert reopened.head == ids[2]
        assert reopened.projection.is_detached

    @pytest.mark.asyncio
    async def test_checkout_existing_branch(
        self, five_step_repo: SessionRepository, session_dir: Path
    ) -> None:
        ids = five_step_repo.projection.ordered_ids
        await five_step_repo.restore(ids[2])

        reopened = await SessionRepository.open(session_dir, "demo")

        assert reopened.head == ids[-1]
        assert _active_branch(session_dir) == "demo"


# =============================================================================
# Saving
# =============================================================================


class TestSave:
    @pytest.mark.asyncio
    async def test_nothing_to_commit(self, repo: SessionRepository) -> None:
        before = repo.projection
        assert not await repo.save()
        assert repo.projection is before

    @pytest.mark.asyncio
    async def test_save_appends_snapshot(
        self, repo: SessionRepository, session_dir: Path
    ) -> None:
        write(session_dir / "hello.txt", "hello\n")

        assert await repo.save()

        projection = repo.projection
        assert len(projection.ordered_ids) == 1
        assert projection.head == projection.branch_head == projection.ordered_ids[0]
        snapshot = repo.head_snapshot()
        assert snapshot is not None
        assert [f.file_name for f in snapshot.changed_files] == ["hello.txt"]
        assert snapshot.message == "Update by retrace."

    @pytest.mark.asyncio
    async def test_unchanged_save_is_noop(
        self, repo: SessionRepository, session_dir: Path
    ) -> None:
        write(session_dir / "hello.txt", "hello\n")
        assert await repo.save()
        assert not await repo.save()
        assert len(repo.projection.ordered_ids) == 1

    @pytest.mark.asyncio
    async def test_custom_commit_message(self, session_dir: Path) -> None:
        repo = await SessionRepository.open(
            session_dir, "demo", commit_message="Step recorded."
        )
        write(session_dir / "a.txt", "a\n")
        await repo.save()

        snapshot = repo.head_snapshot()
        assert snapshot is not None
        assert snapshot.message == "Step recorded."

    @pytest.mark.asyncio
    async def test_no_save_while_browsing_history(
        self, five_step_repo: SessionRepository, session_dir: Path
    ) -> None:
        assert await five_step_repo.previous()
        write(session_dir / "notes.txt", "edited while detached\n")

        assert not await five_step_repo.save()
        assert len(five_step_repo.projection.ordered_ids) == 5

    @pytest.mark.asyncio
    async def test_before_save_hook_output_is_recorded(
        self, repo: SessionRepository, session_dir: Path
    ) -> None:
        recorder = TerminalRecorder(session_dir)
        recorder.append("$ make\n")
        recorder.append("ok\n")
        write(session_dir / "Makefile", "all:\n")

        assert await repo.save(recorder.flush)

        snapshot = repo.head_snapshot()
        assert snapshot is not None
        names = {f.file_name for f in snapshot.changed_files}
        assert names == {"Makefile", "terminal-data.txt"}
        assert recorder.buffered == ""
        assert (session_dir / "terminal-data.txt").read_text() == "$ make\nok\n"

    @pytest.mark.asyncio
    async def test_concurrent_saves_are_serialized(
        self, repo: SessionRepository, session_dir: Path
    ) -> None:
        write(session_dir / "a.txt", "a\n")
        results = await asyncio.gather(repo.save(), repo.save())

        assert sorted(results) == [False, True]
        assert len(repo.projection.ordered_ids) == 1

    @pytest.mark.asyncio
    async def test_commit_off_the_branch_is_rejected(
        self, five_step_repo: SessionRepository, session_dir: Path
    ) -> None:
        ids = five_step_repo.projection.ordered_ids
        # Move git behind the projection's back.
        await five_step_repo.client.checkout_detached(ids[2])
        write(session_dir / "stray.txt", "stray\n")

        with pytest.raises(InternalConsistencyError):
            await five_step_repo.save()

        assert five_step_repo.projection.ordered_ids == ids
        assert await five_step_repo.client.resolve_ref("demo") == ids[-1]


# =============================================================================
# Navigation
# =============================================================================


class TestNavigation:
    @pytest.mark.asyncio
    async def test_boundaries_are_noops(self, five_step_repo: SessionRepository) -> None:
        ids = five_step_repo.projection.ordered_ids

        assert not await five_step_repo.next()
        assert five_step_repo.head == ids[-1]

        await five_step_repo.restore(ids[0])
        before = five_step_repo.projection
        assert not await five_step_repo.previous()
        assert five_step_repo.projection is before

    @pytest.mark.asyncio
    async def test_previous_detaches_and_next_returns_to_branch(
        self, five_step_repo: SessionRepository, session_dir: Path
    ) -> None:
        ids = five_step_repo.projection.ordered_ids

        assert await five_step_repo.previous()
        assert five_step_repo.head == ids[3]
        assert _active_branch(session_dir) is None
        assert (session_dir / "notes.txt").read_text().splitlines()[-1] == "step 3"

        assert await five_step_repo.next()
        assert five_step_repo.head == ids[4]
        assert _active_branch(session_dir) == "demo"

    @pytest.mark.asyncio
    async def test_restore_discards_uncommitted_edits(
        self, five_step_repo: SessionRepository, session_dir: Path
    ) -> None:
        ids = five_step_repo.projection.ordered_ids
        write(session_dir / "notes.txt", "scribble\n")

        await five_step_repo.restore(ids[1])

        assert (session_dir / "notes.txt").read_text() == "step 0\nstep 1\n"
        assert five_step_repo.projection.ordered_ids == ids

    @pytest.mark.asyncio
    async def test_restore_unknown_id(self, five_step_repo: SessionRepository) -> None:
        before = five_step_repo.projection
        with pytest.raises(InternalConsistencyError):
            await five_step_repo.restore("f" * 40)
        assert five_step_repo.projection is before

    @pytest.mark.asyncio
    async def test_restore_notifies_changed_entries(
        self, five_step_repo: SessionRepository
    ) -> None:
        ids = five_step_repo.projection.ordered_ids
        seen: list[Notification] = []

        def record(projection: Projection, notification: Notification) -> None:
            seen.append(notification)

        five_step_repo.subscribe(record)
        await five_step_repo.restore(ids[2])

        assert seen[0] == FullRefresh()
        changed = seen[1]
        assert isinstance(changed, EntriesChanged)
        assert {ids[2], ids[4]} <= changed.ids


# =============================================================================
# Timelines
# =============================================================================


class TestTimelines:
    @pytest.mark.asyncio
    async def test_branch_from(
        self, five_step_repo: SessionRepository, session_dir: Path
    ) -> None:
        ids = five_step_repo.projection.ordered_ids

        await five_step_repo.branch_from(ids[2], "alt")

        projection = five_step_repo.projection
        assert projection.branch == "alt"
        assert projection.ordered_ids == ids[:3]
        assert projection.head == projection.branch_head == ids[2]
        assert _active_branch(session_dir) == "alt"
        assert sorted(await five_step_repo.branches()) == ["alt", "demo"]
        assert await five_step_repo.client.hash_list("demo") == list(ids)

    @pytest.mark.asyncio
    async def test_branch_from_existing_name_leaves_store_alone(
        self, five_step_repo: SessionRepository, session_dir: Path
    ) -> None:
        ids = five_step_repo.projection.ordered_ids

        with pytest.raises(ValueError, match="already exists"):
            await five_step_repo.branch_from(ids[2], "demo")

        assert five_step_repo.head == five_step_repo.projection.branch_head == ids[-1]
        assert await five_step_repo.client.resolve_ref("HEAD") == ids[-1]
        assert _active_branch(session_dir) == "demo"

        write(session_dir / "notes.txt", "step 0\nafter failed fork\n")
        assert await five_step_repo.save()

        ordered = five_step_repo.projection.ordered_ids
        assert len(ordered) == len(set(ordered)) == 6
        assert await five_step_repo.client.resolve_ref("demo") == ordered[-1]

    @pytest.mark.asyncio
    async def test_active_timeline_is_bound_to_log_context(
        self, five_step_repo: SessionRepository, session_dir: Path
    ) -> None:
        ids = five_step_repo.projection.ordered_ids

        await five_step_repo.branch_from(ids[1], "alt")
        assert structlog.contextvars.get_contextvars()["branch"] == "alt"

        await five_step_repo.switch_branch("demo")
        ctx = structlog.contextvars.get_contextvars()
        assert ctx["branch"] == "demo"
        assert ctx["working_dir"] == str(session_dir)

    @pytest.mark.asyncio
    async def test_branch_from_discards_uncommitted_edits(
        self, five_step_repo: SessionRepository, session_dir: Path
    ) -> None:
        ids = five_step_repo.projection.ordered_ids
        write(session_dir / "notes.txt", "scratch\n")

        await five_step_repo.branch_from(ids[1], "alt")

        assert (session_dir / "notes.txt").read_text() == "step 0\nstep 1\n"
        assert _active_branch(session_dir) == "alt"

    @pytest.mark.asyncio
    async def test_save_on_forked_timeline(
        self, five_step_repo: SessionRepository, session_dir: Path
    ) -> None:
        ids = five_step_repo.projection.ordered_ids
        await five_step_repo.branch_from(ids[1], "alt")
        write(session_dir / "notes.txt", "step 0\nstep 1\nalt 2\n")

        assert await five_step_repo.save()

        projection = five_step_repo.projection
        assert projection.ordered_ids[:2] == ids[:2]
        assert len(projection.ordered_ids) == 3

    @pytest.mark.asyncio
    async def test_switch_branch(
        self, five_step_repo: SessionRepository, session_dir: Path
    ) -> None:
        ids = five_step_repo.projection.ordered_ids
        await five_step_repo.branch_from(ids[2], "alt")
        write(session_dir / "alt.txt", "only on alt\n")
        await five_step_repo.save()
        alt_tip = five_step_repo.head

        await five_step_repo.switch_branch("demo")

        projection = five_step_repo.projection
        assert projection.branch == "demo"
        assert projection.ordered_ids == ids
        assert projection.head == ids[-1]
        assert not (session_dir / "alt.txt").exists()

        await five_step_repo.switch_branch("alt")
        assert five_step_repo.head == alt_tip
        assert five_step_repo.get_snapshot(alt_tip or "") is not None

    @pytest.mark.asyncio
    async def test_revert_to(
        self, five_step_repo: SessionRepository, session_dir: Path
    ) -> None:
        ids = five_step_repo.projection.ordered_ids

        await five_step_repo.revert_to(ids[1])

        projection = five_step_repo.projection
        assert projection.ordered_ids == ids[:2]
        assert projection.head == projection.branch_head == ids[1]
        assert (session_dir / "notes.txt").read_text() == "step 0\nstep 1\n"
        assert await five_step_repo.client.resolve_ref("demo") == ids[1]
        # Dropped records stay cached.
        assert five_step_repo.get_snapshot(ids[4]) is not None


# =============================================================================
# Sections and change ranges
# =============================================================================


class TestAnnotations:
    @pytest.mark.asyncio
    async def test_create_annotation(self, five_step_repo: SessionRepository) -> None:
        ids = five_step_repo.projection.ordered_ids

        annotation = await five_step_repo.create_annotation(ids[1], "Part 1: Setup")

        assert annotation.name == "part-1-setup"
        assert annotation.label == "Part 1: Setup"
        assert five_step_repo.get_annotation(ids[1]) == annotation
        assert five_step_repo.section_start(ids[3]) == ids[1]
        assert five_step_repo.section_commit_count(ids[1]) == 4
        assert five_step_repo.step_number_of_head(ids[1]) == 4
        assert str(five_step_repo.progress()) == "[demo]: Part 1: Setup 4 / 4"

    @pytest.mark.asyncio
    async def test_second_section_splits_first(
        self, five_step_repo: SessionRepository
    ) -> None:
        ids = five_step_repo.projection.ordered_ids
        await five_step_repo.create_annotation(ids[0], "Intro")
        await five_step_repo.create_annotation(ids[3], "Outro")

        assert five_step_repo.section_commit_count(ids[0]) == 3
        assert five_step_repo.section_commit_count(ids[3]) == 2
        assert not five_step_repo.is_head_in_section(ids[0])

    @pytest.mark.asyncio
    async def test_snapshot_starts_one_section(
        self, five_step_repo: SessionRepository, session_dir: Path
    ) -> None:
        ids = five_step_repo.projection.ordered_ids
        await five_step_repo.create_annotation(ids[1], "Zeta part")

        with pytest.raises(ValueError, match="already starts section"):
            await five_step_repo.create_annotation(ids[1], "Alpha part")

        reopened = await SessionRepository.open(session_dir, "demo")
        live = five_step_repo.get_annotation(ids[1])
        loaded = reopened.get_annotation(ids[1])
        assert live is not None and loaded is not None
        assert live.label == loaded.label == "Zeta part"

    @pytest.mark.asyncio
    async def test_section_name_in_use(self, five_step_repo: SessionRepository) -> None:
        ids = five_step_repo.projection.ordered_ids
        await five_step_repo.create_annotation(ids[1], "Intro")

        with pytest.raises(ValueError, match="already in use"):
            await five_step_repo.create_annotation(ids[3], "intro!")

        assert five_step_repo.get_annotation(ids[3]) is None

    @pytest.mark.asyncio
    async def test_label_without_letters(self, five_step_repo: SessionRepository) -> None:
        ids = five_step_repo.projection.ordered_ids
        with pytest.raises(ValueError, match="letter or digit"):
            await five_step_repo.create_annotation(ids[0], "!!!")


class TestChangeRanges:
    @pytest.mark.asyncio
    async def test_appended_line(self, five_step_repo: SessionRepository) -> None:
        ids = five_step_repo.projection.ordered_ids

        ranges = await five_step_repo.change_ranges(ids[4])

        assert ranges is not None
        assert ranges.before == TextRange.point(5, 1)
        assert ranges.after.start.line == 5
        assert ranges.after.end.character == len("step 4") + 1

    @pytest.mark.asyncio
    async def test_first_snapshot(self, five_step_repo: SessionRepository) -> None:
        ids = five_step_repo.projection.ordered_ids

        ranges = await five_step_repo.change_ranges(ids[0])

        assert ranges is not None
        assert ranges.before == TextRange.point(1, 1)
        assert ranges.after == TextRange(Position(1, 1), Position(1, len("step 0") + 1))
