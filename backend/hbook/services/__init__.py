# Services package init
"""
Hbook Backend — Services Layer
===============================

Read model (shared by every list endpoint):
    - pager.CursorPager:           one bounded page + continuation cursor
    - projector.ViewerProjector:   viewer flags and counts as sub-selects
    - read_models:                 the concrete pagers, projectors and builders
    - search_query:                free text → tsquery / portable LIKE filter

Domain services (stateless singletons):
    - auth_service:          session cookie → ViewerContext
    - post_service:          for-you, bookmarked, user posts, search
    - comment_service:       comment threads
    - relation_service:      likes, bookmarks, follows (+ notifications)
    - user_service:          profiles by username
    - notification_service:  inbox, unread count, mark-as-read
"""
