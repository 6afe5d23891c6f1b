"""Route handlers for Web API."""

from learnboard.web.routes.health import router as health_router
from learnboard.web.routes.enrollments import router as enrollments_router
from learnboard.web.routes.quizzes import router as quizzes_router

__all__ = [
    "health_router",
    "enrollments_router",
    "quizzes_router",
]
