"""Invintus Sync - Category Reconciler.

Resolves ``categoryXtended`` descriptors onto local CategoryNode rows without
duplicating them:

  1. match on remote_category_id
  2. else match on exact name (taxonomy created before the sync existed);
     the match adopts the remote id
  3. update the match, or create a new node

Parents (``childOf``) are linked in a second pass, through the remote id only,
so a child can reference a parent sent earlier, later, or in a previous
webhook. A parent that cannot be found is reported and the node stays
top-level.
"""

from typing import List, Optional, Sequence, Tuple

from sqlmodel import Session, select

from invintus_sync.models.content_models import CategoryNode
from invintus_sync.models.payload_models import RemoteCategory
from invintus_sync.sync.normalizer import slugify
from invintus_sync.core.logging import get_logger

logger = get_logger("sync.categories")


class CategoryReconciler:
    """Maps remote category descriptors to local taxonomy node ids."""

    def __init__(self, session: Session):
        self.session = session

    # ── Lookups ──

    def find_by_remote_id(self, remote_id: Optional[int]) -> Optional[CategoryNode]:
        if remote_id is None:
            return None
        return self.session.exec(
            select(CategoryNode).where(CategoryNode.remote_category_id == remote_id)
        ).first()

    def find_by_name(self, name: str) -> Optional[CategoryNode]:
        if not name:
            return None
        return self.session.exec(
            select(CategoryNode)
            .where(CategoryNode.name == name)
            .order_by(CategoryNode.id)  # type: ignore
        ).first()

    # ── Resolution ──

    def resolve(self, categories: Sequence[RemoteCategory]) -> List[int]:
        """Create or update a node per descriptor and return their ids.

        Ids follow input order, without duplicates.
        """
        resolved: List[Tuple[RemoteCategory, CategoryNode]] = []

        for descriptor in categories or []:
            node = self._upsert_node(descriptor)
            if node is not None:
                resolved.append((descriptor, node))

        for descriptor, node in resolved:
            self._link_parent(descriptor, node)
        self.session.flush()

        ids: List[int] = []
        for _, node in resolved:
            if node.id not in ids:
                ids.append(node.id)
        return ids

    def _upsert_node(self, descriptor: RemoteCategory) -> Optional[CategoryNode]:
        remote_id = descriptor.category_id
        name = descriptor.category_name.strip()

        node = self.find_by_remote_id(remote_id)
        if node is None:
            node = self.find_by_name(name)

        if node is None:
            if not name:
                logger.warning(
                    f"Skipping category {remote_id!r}: no local match and no name to create it"
                )
                return None
            node = CategoryNode(
                remote_category_id=remote_id,
                name=name,
                slug=slugify(name),
                description=descriptor.category_description,
            )
            self.session.add(node)
            self.session.flush()
            logger.info(f"Created category '{name}' (remote {remote_id}) as {node.id}")
            return node

        if name:
            node.name = name
            node.slug = slugify(name)
        node.description = descriptor.category_description
        if remote_id is not None:
            node.remote_category_id = remote_id
        self.session.add(node)
        self.session.flush()
        return node

    def _link_parent(self, descriptor: RemoteCategory, node: CategoryNode) -> None:
        node.remote_parent_id = descriptor.child_of

        if descriptor.child_of is None:
            node.parent_id = None
        else:
            parent = self.find_by_remote_id(descriptor.child_of)
            if parent is None or parent.id == node.id:
                logger.warning(
                    f"Category '{node.name}' references unknown parent "
                    f"{descriptor.child_of}; leaving it top-level"
                )
                node.parent_id = None
            else:
                node.parent_id = parent.id

        self.session.add(node)
