from app.models.admin_user import AdminUser
from app.models.blog_post import BlogPost
from app.models.token_blacklist import TokenBlacklist, RefreshToken, MagicLinkToken
from app.models.login_attempt import LoginAttempt

__all__ = [
    "AdminUser",
    "BlogPost",
    "TokenBlacklist",
    "RefreshToken",
    "MagicLinkToken",
    "LoginAttempt",
]
