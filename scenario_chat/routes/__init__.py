"""FastAPI API endpoints under /api.

Endpoint groups: health/models, scenarios (CRUD, messages, chat, search),
generation (scenario drafts, embeddings, one-off replies), uploads. A
scenario's child resources are nested under /api/scenarios/{scenario_id}/.
"""

from fastapi import APIRouter

from .generation import router as generation_router
from .scenarios import router as scenarios_router
from .settings import router as settings_router
from .uploads import router as uploads_router

router = APIRouter()
router.include_router(settings_router)
router.include_router(scenarios_router)
router.include_router(generation_router)
router.include_router(uploads_router)
