from app.services.auth_service import AuthService
from app.services.blog_service import BlogService
from app.services.post_service import PostCollection, PostService
from app.services.magic_link_service import MagicLinkSender

__all__ = [
    "AuthService",
    "BlogService",
    "PostCollection",
    "PostService",
    "MagicLinkSender",
]
