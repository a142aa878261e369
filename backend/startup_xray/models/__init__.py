from .analysis import Analysis
from .startup import Startup

__all__ = ["Analysis", "Startup"]
