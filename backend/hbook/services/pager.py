"""
Hbook Backend — Cursor Pager
=============================

What:  Turns an ordered SELECT into exactly one page plus a continuation cursor.
Who:   Every list endpoint: for-you feed, bookmarks, user posts, search,
       comments, notifications.
When:  Once per list request, after the viewer has been resolved.

Algorithm:
    1. Order by (order column, id) in the configured direction
       The id tiebreaker makes the key unique: two posts created in the same
       microsecond still have a total order, so none is skipped or repeated
       at a page boundary.
    2. If a cursor is given, seek to it. The cursor is the id of the first
       record NOT returned by the previous page, so the seek is inclusive:
           DESC: (created_at, id) <= (anchor.created_at, cursor)
           ASC:  (created_at, id) >= (anchor.created_at, cursor)
       The anchor's created_at is a scalar sub-select on the cursor id. If the
       anchor row no longer exists, the sub-select is NULL, every comparison is
       NULL, and the page comes back empty.
    3. LIMIT page_size + 1
    4. More than page_size rows → the extra row's id is next_cursor and the
       row is dropped from the page. Otherwise next_cursor is None.

    Example (11 posts p1..p11, p11 newest, page_size=10):
        fetch_page(cursor=None)  → [p11 .. p2], next_cursor="p1"
        fetch_page(cursor="p1")  → [p1],        next_cursor=None

Consistency:
    No snapshot is held between pages. A post inserted above the cursor after
    page 1 was served is simply not seen by this traversal; a deleted anchor
    ends the traversal early. Both are accepted rather than treated as errors.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Generic, List, Optional, Sequence, TypeVar

from sqlalchemy import Select, and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from hbook.exceptions import ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")
U = TypeVar("U")

# Label of the extra column carrying each row's cursor value
CURSOR_COLUMN = "cursor_id"


@dataclass(frozen=True)
class Page(Generic[T]):
    """One bounded slice of an ordered collection."""

    items: List[T]
    next_cursor: Optional[str] = None

    def map(self, fn: Callable[[T], U]) -> "Page[U]":
        """Convert every item, keeping the cursor."""
        return Page(items=[fn(item) for item in self.items], next_cursor=self.next_cursor)


@dataclass(frozen=True)
class OrderKey:
    """
    Describes the ordering a cursor is valid for.

    Attributes:
        model:      Mapped class whose ids the cursor carries (Post, Bookmark, ...)
        column:     Attribute name of the order column
        tiebreaker: Attribute name of the unique tiebreaker
        descending: Newest first when True
    """

    model: Any
    column: str = "created_at"
    tiebreaker: str = "id"
    descending: bool = True


class CursorPager:
    """
    Keyset pagination over a single order key.

    A pager instance holds no per-request state; build one per call site at
    import time and reuse it.
    """

    def __init__(self, order_key: OrderKey, page_size: int):
        if page_size < 1:
            raise ValueError(f"page_size must be a positive integer, got {page_size}")
        self.order_key = order_key
        self.page_size = page_size

    @property
    def _order_column(self):
        return getattr(self.order_key.model, self.order_key.column)

    @property
    def _tiebreaker(self):
        return getattr(self.order_key.model, self.order_key.tiebreaker)

    def _ordering(self) -> tuple:
        if self.order_key.descending:
            return self._order_column.desc(), self._tiebreaker.desc()
        return self._order_column.asc(), self._tiebreaker.asc()

    def _seek(self, cursor: str):
        """WHERE clause resuming at (and including) the cursor record."""
        anchor = aliased(self.order_key.model, name="cursor_anchor")
        anchor_value = (
            select(getattr(anchor, self.order_key.column))
            .where(getattr(anchor, self.order_key.tiebreaker) == cursor)
            .scalar_subquery()
        )
        column, tiebreaker = self._order_column, self._tiebreaker
        if self.order_key.descending:
            return or_(
                column < anchor_value,
                and_(column == anchor_value, tiebreaker <= cursor),
            )
        return or_(
            column > anchor_value,
            and_(column == anchor_value, tiebreaker >= cursor),
        )

    def build(self, statement: Select, cursor: Optional[str] = None) -> Select:
        """
        Apply cursor, ordering and the page_size + 1 limit to `statement`.

        The statement must select from (or join) `order_key.model`. An extra
        column labelled CURSOR_COLUMN is appended so trim() can read the
        cursor value without knowing the row layout.
        """
        statement = statement.add_columns(self._tiebreaker.label(CURSOR_COLUMN))
        if cursor:
            statement = statement.where(self._seek(cursor))
        return statement.order_by(*self._ordering()).limit(self.page_size + 1)

    def trim(self, rows: Sequence[Any]) -> Page:
        """Cut a page_size + 1 fetch down to one page and derive next_cursor."""
        if len(rows) > self.page_size:
            extra = rows[self.page_size]
            return Page(
                items=list(rows[: self.page_size]),
                next_cursor=str(extra._mapping[CURSOR_COLUMN]),
            )
        return Page(items=list(rows), next_cursor=None)

    async def fetch_page(
        self,
        db: AsyncSession,
        statement: Select,
        cursor: Optional[str] = None,
    ) -> Page:
        """
        Run one bounded fetch and return a page of result rows.

        Args:
            db: Async database session
            statement: Unordered, unlimited SELECT describing the collection
            cursor: next_cursor from a previous page of the same ordering

        Returns:
            Page of SQLAlchemy Row objects; next_cursor is None on the last page.

        Raises:
            ValidationError: cursor was sent but is blank.
        """
        if cursor is not None and not cursor.strip():
            raise ValidationError("Cursor must not be blank", field="cursor")
        result = await db.execute(self.build(statement, cursor))
        rows = list(result.all())
        page = self.trim(rows)
        logger.debug(
            "Fetched page of %d %s rows (cursor=%s, next=%s)",
            len(page.items),
            self.order_key.model.__name__,
            cursor,
            page.next_cursor,
        )
        return page
