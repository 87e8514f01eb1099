# snap2spoon/app/main.py
from __future__ import annotations
import logging
import sys
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from snap2spoon import __version__
from snap2spoon.app.config import settings
from snap2spoon.app.deps import registry
from snap2spoon.app.routers.auth import router as auth_router
from snap2spoon.app.routers.generation import router as generation_router
from snap2spoon.app.routers.nutrition import router as nutrition_router
from snap2spoon.app.routers.profile import router as profile_router
from snap2spoon.app.routers.recipes import router as recipes_router

# Plain stdout logging (fine for dev and containers)
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

app = FastAPI(title="Snap2Spoon API", version=__version__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.FRONTEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(recipes_router)
app.include_router(generation_router)
app.include_router(nutrition_router)
app.include_router(profile_router)


@app.on_event("shutdown")
async def shutdown() -> None:
    # let in-flight generations finish and flush pending remote writes
    await registry.shutdown()


@app.get("/health")
def health():
    return {"ok": True}
