"""Session repository: the state machine over a recording's git history.

Every operation that touches the backing repository runs as one job on the
session's :class:`~retrace.utils.job_queue.JobQueue`. A job issues its git
commands, builds a new :class:`Projection`, and publishes it on the feed as
its last step; a job that fails midway publishes nothing, so the feed keeps
the last good projection.

Queries (head, sections, progress) read the last published projection
synchronously and may run while a job is queued.

Example:
    ```python
    repo = await SessionRepository.open(Path("/project"), "demo")
    await repo.save()
    await repo.previous()
    print(repo.projection.progress())
    ```
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import replace
from pathlib import Path

from retrace.exceptions import (
    InternalConsistencyError,
    NothingToCommitError,
    SessionNotReadyError,
)
from retrace.git.client import GitClient
from retrace.git.diff import compute_change_ranges
from retrace.git.models import Annotation, ChangeRanges, Snapshot
from retrace.git.parsing import slugify
from retrace.logging import bind_session, get_logger
from retrace.session.feed import (
    EntriesChanged,
    FullRefresh,
    ProjectionFeed,
    Subscriber,
)
from retrace.session.projection import Progress, Projection
from retrace.utils.job_queue import JobQueue

__all__ = ["DEFAULT_COMMIT_MESSAGE", "BeforeSaveHook", "SessionRepository"]

logger = get_logger(__name__)

DEFAULT_COMMIT_MESSAGE = "Update by retrace."

BeforeSaveHook = Callable[[], Awaitable[None]]


def _head_change_ids(old: Projection, new: Projection) -> frozenset[str]:
    """Ids whose display depends on where head and branch head are."""
    ids: set[str | None] = {old.head, old.branch_head, new.head, new.branch_head}
    if old.head is not None and old.head in old.ordered_ids:
        ids.add(old.section_start(old.head))
    if new.head is not None:
        ids.add(new.section_start(new.head))
    return frozenset(i for i in ids if i is not None)


class SessionRepository:
    """State machine over one working directory's recording.

    The repository is ``uninitialized`` until :meth:`initialize` completes;
    afterwards it is ``ready``. Calling anything else first raises
    :class:`SessionNotReadyError`.

    Args:
        working_dir: Session root (the git working tree).
        client: Optional pre-configured GitClient.
        commit_message: Message used for every recorded snapshot.
    """

    def __init__(
        self,
        working_dir: Path,
        *,
        client: GitClient | None = None,
        commit_message: str = DEFAULT_COMMIT_MESSAGE,
    ) -> None:
        self._working_dir = working_dir
        self._client = client or GitClient(working_dir)
        self._commit_message = commit_message
        self._queue = JobQueue()
        self._feed = ProjectionFeed()

    @classmethod
    async def open(
        cls,
        working_dir: Path,
        branch: str,
        *,
        checkout_existing: bool = True,
        client: GitClient | None = None,
        commit_message: str = DEFAULT_COMMIT_MESSAGE,
    ) -> SessionRepository:
        """Create a repository and initialize it on ``branch``."""
        repo = cls(working_dir, client=client, commit_message=commit_message)
        await repo.initialize(branch, checkout_existing=checkout_existing)
        return repo

    # -------------------------------------------------------------------------
    # State access
    # -------------------------------------------------------------------------

    @property
    def working_dir(self) -> Path:
        return self._working_dir

    @property
    def client(self) -> GitClient:
        return self._client

    @property
    def feed(self) -> ProjectionFeed:
        return self._feed

    @property
    def queue(self) -> JobQueue:
        return self._queue

    @property
    def is_ready(self) -> bool:
        return self._feed.current is not None

    @property
    def projection(self) -> Projection:
        """Last published projection.

        Raises:
            SessionNotReadyError: Before :meth:`initialize` completes.
        """
        current = self._feed.current
        if current is None:
            raise SessionNotReadyError()
        return current

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Subscribe to projection updates; see :class:`ProjectionFeed`."""
        return self._feed.subscribe(callback)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def head(self) -> str | None:
        return self.projection.head

    @property
    def branch(self) -> str:
        return self.projection.branch

    def get_snapshot(self, snapshot_id: str) -> Snapshot | None:
        return self.projection.get_snapshot(snapshot_id)

    def get_annotation(self, snapshot_id: str) -> Annotation | None:
        return self.projection.get_annotation(snapshot_id)

    def head_snapshot(self) -> Snapshot | None:
        return self.projection.head_snapshot

    def next_snapshot(self) -> Snapshot | None:
        """Snapshot that :meth:`next` would restore."""
        next_id = self.projection.next_id()
        return None if next_id is None else self.projection.snapshots[next_id]

    def previous_snapshot(self) -> Snapshot | None:
        """Snapshot that :meth:`previous` would restore."""
        previous_id = self.projection.previous_id()
        return None if previous_id is None else self.projection.snapshots[previous_id]

    def section_start(self, snapshot_id: str) -> str | None:
        return self.projection.section_start(snapshot_id)

    def section_commit_count(self, snapshot_id: str) -> int:
        return self.projection.section_commit_count(snapshot_id)

    def is_head_in_section(self, snapshot_id: str) -> bool:
        return self.projection.is_head_in_section(snapshot_id)

    def step_number_of_head(self, snapshot_id: str) -> int | None:
        return self.projection.step_number_of_head(snapshot_id)

    def progress(self) -> Progress:
        return self.projection.progress()

    # -------------------------------------------------------------------------
    # Initialization
    # -------------------------------------------------------------------------

    async def initialize(self, branch: str, *, checkout_existing: bool = True) -> None:
        """Load the session for ``branch``, creating repository and branch.

        Args:
            branch: Timeline to record on.
            checkout_existing: When the branch already exists, check it out
                (True) or trust the caller's current checkout (False).
        """

        async def job() -> None:
            if not await self._client.is_initialized():
                await self._client.init()

            if branch not in await self._client.branches():
                await self._client.create_branch(branch)
            elif checkout_existing:
                await self._client.checkout(branch)

            head = await self._client.resolve_ref("HEAD")
            branch_head = await self._client.resolve_ref(branch)
            modified = await self._client.is_modified()
            snapshots = await self._client.log(branch) if branch_head else []
            annotations = await self._load_annotations()

            projection = Projection(
                branch=branch,
                snapshots={snapshot.id: snapshot for snapshot in snapshots},
                ordered_ids=tuple(snapshot.id for snapshot in snapshots),
                head=head,
                branch_head=branch_head,
                annotations=annotations,
                working_dir_modified=modified,
            )
            self._feed.publish(projection, FullRefresh())
            logger.info(
                "session_initialized",
                branch=branch,
                snapshots=len(snapshots),
                head=head,
            )

        await self._queue.enqueue(job)
        bind_session(self._working_dir, branch)

    async def _load_annotations(self) -> dict[str, Annotation]:
        annotations: dict[str, Annotation] = {}
        for name in await self._client.list_tags():
            annotation = await self._client.show_tag(name)
            # Tags made outside retrace may share a snapshot; the first name wins.
            if annotation is not None:
                annotations.setdefault(annotation.snapshot_id, annotation)
        return annotations

    # -------------------------------------------------------------------------
    # Recording
    # -------------------------------------------------------------------------

    async def save(self, before_save: BeforeSaveHook | None = None) -> bool:
        """Record the working directory as a new snapshot.

        Does nothing while head is behind the branch tip: recording there
        would fork history outside :meth:`branch_from`.

        Args:
            before_save: Coroutine function run right before staging.

        Returns:
            True if a snapshot was created, False if there was nothing to do.
        """

        async def job() -> bool:
            current = self.projection
            if current.head != current.branch_head:
                logger.debug("save_skipped_detached", head=current.head)
                return False

            if before_save is not None:
                await before_save()

            try:
                await self._client.commit_all(self._commit_message)
            except NothingToCommitError:
                logger.debug("save_nothing_to_commit")
                return False

            new_id = await self._client.resolve_ref("HEAD")
            branch_tip = await self._client.resolve_ref(current.branch)
            if new_id is None or new_id in current.ordered_ids:
                raise InternalConsistencyError(
                    f"Commit on {current.branch} did not produce a new snapshot"
                )
            if branch_tip != new_id:
                raise InternalConsistencyError(
                    f"Snapshot {new_id[:7]} was not recorded on {current.branch}"
                )
            snapshot = await self._client.show(new_id)

            projection = replace(
                current,
                snapshots={**current.snapshots, new_id: snapshot},
                ordered_ids=(*current.ordered_ids, new_id),
                head=new_id,
                branch_head=new_id,
                working_dir_modified=False,
            )
            self._feed.publish(projection, FullRefresh())
            logger.info("snapshot_saved", snapshot_id=snapshot.short_id)
            return True

        return await self._queue.enqueue(job)

    # -------------------------------------------------------------------------
    # Navigation
    # -------------------------------------------------------------------------

    async def _restore(self, snapshot_id: str) -> None:
        """Check out ``snapshot_id`` and move head; runs inside a job."""
        current = self.projection
        current.index_of(snapshot_id)

        if snapshot_id == current.branch_head:
            await self._client.checkout(current.branch)
        else:
            await self._client.checkout_detached(snapshot_id)

        projection = replace(current, head=snapshot_id, working_dir_modified=False)
        self._feed.publish(
            projection, EntriesChanged(_head_change_ids(current, projection))
        )
        logger.debug("snapshot_restored", snapshot_id=snapshot_id)

    async def restore(self, snapshot_id: str) -> None:
        """Make the working directory match a snapshot exactly.

        Uncommitted edits are discarded. The timeline is unchanged.

        Raises:
            InternalConsistencyError: If the id is not on the timeline.
        """

        async def job() -> None:
            await self._restore(snapshot_id)

        await self._queue.enqueue(job)

    async def next(self) -> bool:
        """Restore the snapshot after head.

        Returns:
            False at the end of the timeline (nothing is touched).
        """

        async def job() -> bool:
            next_id = self.projection.next_id()
            if next_id is None:
                return False
            await self._restore(next_id)
            return True

        return await self._queue.enqueue(job)

    async def previous(self) -> bool:
        """Restore the snapshot before head.

        Returns:
            False at the start of the timeline (nothing is touched).
        """

        async def job() -> bool:
            previous_id = self.projection.previous_id()
            if previous_id is None:
                return False
            await self._restore(previous_id)
            return True

        return await self._queue.enqueue(job)

    # -------------------------------------------------------------------------
    # Timelines
    # -------------------------------------------------------------------------

    async def branches(self) -> list[str]:
        """Names of every timeline in the repository."""
        return await self._queue.enqueue(self._client.branches)

    async def branch_from(self, snapshot_id: str, name: str) -> None:
        """Fork a new timeline at ``snapshot_id`` and make it active.

        The original timeline is left intact.

        Raises:
            ValueError: If a timeline named ``name`` already exists.
        """

        async def job() -> None:
            current = self.projection
            index = current.index_of(snapshot_id)
            if name in await self._client.branches():
                raise ValueError(f"Timeline {name!r} already exists")

            await self._client.create_branch(name, snapshot_id)

            projection = replace(
                current,
                branch=name,
                ordered_ids=current.ordered_ids[: index + 1],
                head=snapshot_id,
                branch_head=snapshot_id,
                working_dir_modified=False,
            )
            self._feed.publish(projection, FullRefresh())
            logger.info("branch_forked", branch=name, snapshot_id=snapshot_id)

        await self._queue.enqueue(job)
        bind_session(self._working_dir, name)

    async def switch_branch(self, name: str) -> None:
        """Check out an existing timeline and make it active."""

        async def job() -> None:
            current = self.projection

            await self._client.checkout(name)
            ordered_ids = await self._client.hash_list(name)

            snapshots = dict(current.snapshots)
            for snapshot_id in ordered_ids:
                if snapshot_id not in snapshots:
                    snapshots[snapshot_id] = await self._client.show(snapshot_id)

            projection = replace(
                current,
                branch=name,
                snapshots=snapshots,
                ordered_ids=tuple(ordered_ids),
                head=await self._client.resolve_ref("HEAD"),
                branch_head=await self._client.resolve_ref(name),
                working_dir_modified=await self._client.is_modified(),
            )
            self._feed.publish(projection, FullRefresh())
            logger.info(
                "branch_switched",
                branch=name,
                fetched=len(snapshots) - len(current.snapshots),
            )

        await self._queue.enqueue(job)
        bind_session(self._working_dir, name)

    async def revert_to(self, snapshot_id: str) -> None:
        """Move the active timeline's tip back to ``snapshot_id``.

        Snapshots after it are dropped from the timeline. Their records stay
        in the snapshot cache.
        """

        async def job() -> None:
            current = self.projection
            index = current.index_of(snapshot_id)

            await self._client.checkout(current.branch)
            await self._client.reset_hard(snapshot_id)

            projection = replace(
                current,
                ordered_ids=current.ordered_ids[: index + 1],
                head=snapshot_id,
                branch_head=snapshot_id,
                working_dir_modified=False,
            )
            self._feed.publish(projection, FullRefresh())
            logger.info(
                "timeline_reverted",
                snapshot_id=snapshot_id,
                dropped=len(current.ordered_ids) - index - 1,
            )

        await self._queue.enqueue(job)

    # -------------------------------------------------------------------------
    # Sections
    # -------------------------------------------------------------------------

    async def create_annotation(self, snapshot_id: str, label: str) -> Annotation:
        """Start a section named ``label`` at ``snapshot_id``.

        A snapshot starts at most one section and section names are unique,
        so the annotations loaded from the repository always match the ones
        created here.

        Raises:
            ValueError: If the label has no letters or digits, the snapshot
                already starts a section, or the name is taken.
        """
        name = slugify(label)
        if not name:
            raise ValueError(f"Section label needs a letter or digit: {label!r}")

        async def job() -> Annotation:
            current = self.projection
            current.index_of(snapshot_id)
            existing = current.annotations.get(snapshot_id)
            if existing is not None:
                raise ValueError(
                    f"Snapshot {snapshot_id[:7]} already starts section "
                    f"{existing.label!r}"
                )
            if any(a.name == name for a in current.annotations.values()):
                raise ValueError(f"Section name {name!r} is already in use")
            previous_start = current.section_start(snapshot_id)

            await self._client.create_tag(name, snapshot_id, label)

            annotation = Annotation(name=name, label=label, snapshot_id=snapshot_id)
            projection = replace(
                current, annotations={**current.annotations, snapshot_id: annotation}
            )
            changed = {snapshot_id} | _head_change_ids(current, projection)
            if previous_start is not None:
                changed.add(previous_start)
            self._feed.publish(projection, EntriesChanged(frozenset(changed)))
            return annotation

        return await self._queue.enqueue(job)

    # -------------------------------------------------------------------------
    # Change ranges
    # -------------------------------------------------------------------------

    async def change_ranges(self, snapshot_id: str) -> ChangeRanges | None:
        """Before/after ranges of the change a snapshot recorded."""

        async def job() -> ChangeRanges | None:
            return compute_change_ranges(await self._client.show_patch(snapshot_id))

        return await self._queue.enqueue(job)
