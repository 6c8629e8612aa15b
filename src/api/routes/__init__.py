"""
Route modules for the API.

Each module exports a FastAPI APIRouter with endpoints
for a specific domain/feature.
"""

from api.routes import health
from api.routes import members
from api.routes import recommend

__all__ = ["health", "members", "recommend"]
