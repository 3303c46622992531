from app.api.routes.auth import router as auth_router
from app.api.routes.admin_posts import router as admin_posts_router
from app.api.routes.blog import router as blog_router

__all__ = ["auth_router", "admin_posts_router", "blog_router"]
