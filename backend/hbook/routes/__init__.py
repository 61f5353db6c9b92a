# Routes package init
"""
Hbook Backend — API Routes Package
===================================

Route Inventory:
    - posts.py:          /api/posts/for-you, /api/posts/bookmarked,
                         /api/posts/{post_id}/comments | likes | bookmark
    - users.py:          /api/users/username/{username},
                         /api/users/{user_id}/posts | followers
    - search.py:         /api/search
    - notifications.py:  /api/notifications, /unread-count, /mark-as-read
    - health.py:         /health

Routes stay thin: resolve the viewer, call a service, return its schema.
Status codes come from the exception handlers in main.py.
"""
