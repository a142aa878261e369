from .analyses import router as analyses_router
from .analyze import router as analyze_router
from .compare import router as compare_router
from .startups import router as startups_router

__all__ = ["analyses_router", "analyze_router", "compare_router", "startups_router"]
