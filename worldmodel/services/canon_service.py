"""
Canon service - the workspace's stated goals and strategy.

The latest canon's embedding is the reference vector for alignment scoring.
"""

from worldmodel.config import Config
from worldmodel.core.embeddings.gateway import EmbeddingGateway
from worldmodel.core.store.base import SynthesisStore
from worldmodel.models.canon import Canon
from worldmodel.utils.exceptions import ValidationError
from worldmodel.utils.id_generator import generate_canon_id
from worldmodel.utils.logger import get_logger

logger = get_logger(__name__)


class CanonService:
    """Stores canon revisions. Each update is a new revision; the latest wins."""

    def __init__(self, store: SynthesisStore, gateway: EmbeddingGateway, config: Config):
        self.store = store
        self.gateway = gateway
        self.config = config

    async def set_canon(self, workspace_id: str, content: str) -> Canon:
        """
        Store a new canon revision.

        The canon embedding is required: a canon without one could not serve
        as the alignment reference.

        Raises:
            ValidationError: If content is empty
            EmbeddingError: If embedding fails
        """
        content = (content or "").strip()
        if not content:
            raise ValidationError("Canon content cannot be empty")

        embedding = await self.gateway.embed(content, max_chars=self.config.embedder.max_chars)
        canon = Canon(
            id=generate_canon_id(),
            workspace_id=workspace_id,
            content=content,
            embedding=embedding,
        )
        await self.store.insert_canon(canon)

        logger.info(f"Canon updated: {canon.id}", extra={"workspace_id": workspace_id})
        return canon

    async def get_canon(self, workspace_id: str) -> Canon | None:
        return await self.store.get_latest_canon(workspace_id)
