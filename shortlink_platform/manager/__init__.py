from .code_generator import CodeGenerator
from .resolver import RedirectResolver
from .shortening_service import ShorteningService
from .strategies import BaseStrategy, RandomStrategy

__all__ = ["BaseStrategy", "CodeGenerator", "RandomStrategy", "RedirectResolver", "ShorteningService"]
