"""
Hbook Backend — Search Query Builder
=====================================

What:  Normalizes free text into a PostgreSQL tsquery string and builds the
       matching WHERE clause for posts.
How:   "  hello   world " → "hello & world": every term must match.
       Operator characters (& | ! : * ( ) < > ' \\) are stripped so user input
       can never produce a malformed tsquery.

Empty input (or input made only of operator characters) normalizes to "".
The caller treats "" as "match nothing" and skips the query entirely.
"""

import re
from typing import List

from sqlalchemy import and_, func, or_
from sqlalchemy.sql.elements import ColumnElement

from hbook.models import Post, User

_OPERATOR_CHARS = re.compile(r"[&|!:*()<>'\\]")

TEXT_SEARCH_CONFIG = "english"


def search_terms(raw: str) -> List[str]:
    """Whitespace-separated terms with operator characters removed."""
    terms = (_OPERATOR_CHARS.sub("", part) for part in (raw or "").split())
    return [term for term in terms if term]


def build_text_query(raw: str) -> str:
    """
    Turn user input into a tsquery expression.

    Examples:
        build_text_query("hello world")  → "hello & world"
        build_text_query("  ")           → ""
        build_text_query("a&b | c")      → "ab & c"
    """
    return " & ".join(search_terms(raw))


def post_search_condition(raw: str, dialect: str) -> ColumnElement:
    """
    WHERE clause matching posts by content, author display name or username.

    PostgreSQL: to_tsvector(field) @@ to_tsquery(query), OR-ed over the three
    fields. Other dialects: every term must be a case-insensitive substring
    of one of the fields; LIKE wildcards in a term match literally.
    """
    fields = (Post.content, User.display_name, User.username)
    if dialect == "postgresql":
        tsquery = func.to_tsquery(TEXT_SEARCH_CONFIG, build_text_query(raw))
        return or_(
            *(func.to_tsvector(TEXT_SEARCH_CONFIG, field).op("@@")(tsquery) for field in fields)
        )
    return and_(
        *(
            or_(*(field.icontains(term, autoescape=True) for field in fields))
            for term in search_terms(raw)
        )
    )
