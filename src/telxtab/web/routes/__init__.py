"""Route handlers for the Telxtab Web API."""

from telxtab.web.routes.health import router as health_router
from telxtab.web.routes.auth import router as auth_router
from telxtab.web.routes.profiles import router as profiles_router
from telxtab.web.routes.follows import router as follows_router
from telxtab.web.routes.blog import router as blog_router
from telxtab.web.routes.courses import router as courses_router
from telxtab.web.routes.progress import router as progress_router
from telxtab.web.routes.exercises import router as exercises_router
from telxtab.web.routes.ai import router as ai_router
from telxtab.web.routes.messages import router as messages_router
from telxtab.web.routes.notifications import router as notifications_router
from telxtab.web.routes.admin import router as admin_router
from telxtab.web.routes.admin_content import router as admin_content_router
from telxtab.web.routes.storage import router as storage_router

__all__ = [
    "health_router",
    "auth_router",
    "profiles_router",
    "follows_router",
    "blog_router",
    "courses_router",
    "progress_router",
    "exercises_router",
    "ai_router",
    "messages_router",
    "notifications_router",
    "admin_router",
    "admin_content_router",
    "storage_router",
]
