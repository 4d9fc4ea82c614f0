from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from stemtrack import __version__
from stemtrack.config import settings
from stemtrack.database import engine
from stemtrack.middleware.exceptions import register_exception_handlers
from stemtrack.middleware.security import SecurityHeadersMiddleware
from stemtrack.realtime.broker import close_redis
from stemtrack.routers import auth, bunches, dashboard, health, inventory, lines, realtime, recipes


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await close_redis()
    await engine.dispose()


app = FastAPI(
    title="StemTrack",
    description="Flower inventory and bouquet production tracking",
    version=__version__,
    lifespan=lifespan,
)

# ── Exception Handlers ───────────────────────────────────────
register_exception_handlers(app)

# ── Middleware (outermost first) ─────────────────────────────
app.add_middleware(SecurityHeadersMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ──────────────────────────────────────────────────
app.include_router(health.router)
app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(inventory.router, prefix="/api/inventory", tags=["inventory"])
app.include_router(lines.router, prefix="/api/lines", tags=["lines"])
app.include_router(bunches.line_items_router, prefix="/api/line-items", tags=["lines"])
app.include_router(recipes.router, prefix="/api/recipes", tags=["recipes"])
app.include_router(bunches.router, prefix="/api/bunches", tags=["bunches"])
app.include_router(dashboard.router, prefix="/api/dashboard", tags=["dashboard"])
app.include_router(realtime.router, tags=["realtime"])
