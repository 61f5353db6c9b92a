"""
Hbook Backend — Viewer-Scoped Projector
========================================

What:  Adds viewer-relative flags and aggregate counts to an entity query.
How:   Each relation contributes correlated scalar sub-selects to the same
       SELECT that fetches the entity:

           SELECT posts.*,
                  (SELECT count(*) FROM likes WHERE likes.post_id = posts.id)
                      AS post_likes,
                  EXISTS (SELECT * FROM likes
                          WHERE likes.post_id = posts.id
                            AND likes.user_id = :viewer)
                      AS post_is_liked_by_user
           FROM posts ...

       The flag sub-select is restricted to the viewer's row, so it touches at
       most one child row however many likes a post has; the count sub-select
       returns a number, never the rows. No child collection is loaded.
Who:   read_models builds the post and user projectors; feed, comment and
       user services add their columns to every statement they page.

Precondition:
    require_viewer() runs before any statement is built. A missing viewer is
    an UnauthorizedError, never an anonymous default.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, TypeVar

from sqlalchemy import exists, func, select

from hbook.exceptions import UnauthorizedError

V = TypeVar("V")


@dataclass(frozen=True)
class Relation:
    """
    One child collection of the projected entity.

    Attributes:
        target: Child column referencing the entity (Like.post_id)
        actor:  Child column holding the acting user (Like.user_id);
                required when `flag` is set
        flag:   Output key for "viewer has a row here", or None
        count:  Output key for the child-row count, or None
    """

    target: Any
    actor: Optional[Any] = None
    flag: Optional[str] = None
    count: Optional[str] = None

    def __post_init__(self):
        if self.flag and self.actor is None:
            raise ValueError(f"Relation flag '{self.flag}' needs an actor column")
        if not self.flag and not self.count:
            raise ValueError("Relation must produce a flag, a count, or both")


def require_viewer(viewer: Optional[V]) -> V:
    """Return the viewer, or raise UnauthorizedError when there is none."""
    if viewer is None or not getattr(viewer, "id", None):
        raise UnauthorizedError()
    return viewer


class ViewerProjector:
    """
    Projection of one entity type.

    Args:
        entity_id: The entity's id column in the outer query (Post.id)
        relations: Child collections to flag / count
        prefix:    Label prefix, so several projectors can share one row
                   (a post and its author)
    """

    def __init__(self, entity_id: Any, relations: Sequence[Relation], prefix: str):
        self.entity_id = entity_id
        self.relations = tuple(relations)
        self.prefix = prefix

    def label(self, key: str) -> str:
        return f"{self.prefix}_{key}"

    def columns(self, viewer_id: str) -> List[Any]:
        """Labelled scalar sub-selects to add to the entity's SELECT."""
        cols = []
        for relation in self.relations:
            if relation.count:
                cols.append(
                    select(func.count())
                    .where(relation.target == self.entity_id)
                    .scalar_subquery()
                    .label(self.label(relation.count))
                )
            if relation.flag:
                cols.append(
                    exists()
                    .where(
                        relation.target == self.entity_id,
                        relation.actor == viewer_id,
                    )
                    .label(self.label(relation.flag))
                )
        return cols

    def project(self, row: Any) -> Dict[str, Any]:
        """Read this projector's labelled values out of a result row."""
        mapping = row._mapping
        derived: Dict[str, Any] = {}
        for relation in self.relations:
            if relation.count:
                derived[relation.count] = int(mapping[self.label(relation.count)] or 0)
            if relation.flag:
                derived[relation.flag] = bool(mapping[self.label(relation.flag)])
        return derived
