# AuthGate API Routes
from authgate.api.router import api_router

__all__ = ["api_router"]
