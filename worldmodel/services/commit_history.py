"""
Commit history - listing, lineage and replay.

The commit chain is walked one parent edge at a time with no assumed depth
bound. A revisited commit (cycle) or a missing parent is reported as
HistoryError rather than looping or silently truncating.
"""

from worldmodel.core.store.base import SynthesisStore
from worldmodel.models.commit import (
    ChangeType,
    Commit,
    CommitDetail,
    CommitSummary,
    DocumentVersion,
)
from worldmodel.utils.exceptions import HistoryError, NotFoundError
from worldmodel.utils.logger import get_logger

logger = get_logger(__name__)


class CommitHistory:
    """
    Read-side operations over the commit history.

    Features:
    - Newest-first listing with linked signal counts
    - Commit detail (version rows + linked signals)
    - Lineage walk with cycle detection
    - Per-document version history
    - Replay of the synthesis document set as of any commit
    """

    def __init__(self, store: SynthesisStore):
        self.store = store

    async def list_commits(self, workspace_id: str, limit: int = 50) -> list[CommitSummary]:
        """List commits newest first."""
        return await self.store.list_commits(workspace_id, limit=limit)

    async def get_commit(self, commit_id: str) -> Commit:
        """
        Retrieve a commit by ID.

        Raises:
            NotFoundError: If the commit doesn't exist
        """
        commit = await self.store.get_commit(commit_id)
        if commit is None:
            raise NotFoundError(f"Commit not found: {commit_id}", context={"commit_id": commit_id})
        return commit

    async def get_commit_detail(self, commit_id: str) -> CommitDetail:
        """Commit with its version rows and linked signal ids."""
        commit = await self.get_commit(commit_id)
        versions = await self.store.list_commit_versions(commit_id)
        signal_ids = await self.store.list_commit_signal_ids(commit_id)
        return CommitDetail(commit=commit, versions=versions, signal_ids=signal_ids)

    async def lineage(self, commit_id: str) -> list[Commit]:
        """
        Follow parent links from a commit back to the root.

        Args:
            commit_id: Starting commit

        Returns:
            Commits from the given one (first) to the root (last)

        Raises:
            NotFoundError: If the starting commit doesn't exist
            HistoryError: On a cycle or a dangling parent id
        """
        chain: list[Commit] = []
        visited: set[str] = set()
        current: Commit | None = await self.get_commit(commit_id)

        while current is not None:
            if current.id in visited:
                raise HistoryError(
                    f"Cycle detected in commit history at {current.id}",
                    context={"commit_id": commit_id, "revisited": current.id},
                )
            visited.add(current.id)
            chain.append(current)

            if current.parent_id is None:
                break

            parent = await self.store.get_commit(current.parent_id)
            if parent is None:
                raise HistoryError(
                    f"Dangling parent {current.parent_id} of commit {current.id}",
                    context={"commit_id": current.id, "parent_id": current.parent_id},
                )
            if parent.workspace_id != current.workspace_id:
                raise HistoryError(
                    f"Parent {parent.id} belongs to another workspace",
                    context={"commit_id": current.id, "parent_id": parent.id},
                )
            current = parent

        return chain

    async def depth(self, commit_id: str) -> int:
        """Number of parent edges between a commit and the root."""
        return len(await self.lineage(commit_id)) - 1

    async def document_history(self, document_id: str) -> list[DocumentVersion]:
        """Version rows of one document, oldest first."""
        return await self.store.list_document_versions(document_id)

    async def snapshot_at(self, commit_id: str) -> dict[str, DocumentVersion]:
        """
        Reconstruct the synthesis documents as they stood after a commit.

        Version rows are replayed from the root forward: created / modified
        rows set a document's state, deleted rows remove it.

        Returns:
            Mapping of document id to its latest version at that commit
        """
        chain = await self.lineage(commit_id)

        state: dict[str, DocumentVersion] = {}
        for commit in reversed(chain):
            for version in await self.store.list_commit_versions(commit.id):
                if version.change_type == ChangeType.DELETED:
                    state.pop(version.document_id, None)
                else:
                    state[version.document_id] = version

        logger.debug(
            f"Replayed {len(chain)} commits into {len(state)} documents",
            extra={"commit_id": commit_id},
        )
        return state
