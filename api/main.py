from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from funnel import __version__
from funnel.db import create_all
from funnel.logging_config import configure_logging
from funnel.settings import API_DEBUG, API_HOST, API_PORT

configure_logging("DEBUG" if API_DEBUG else None)


@asynccontextmanager
async def lifespan(app: FastAPI):
    create_all()
    yield


app = FastAPI(
    lifespan=lifespan,
    title="Funnel API",
    version=__version__,
    description="HTTP layer over the client pipeline: stage changes, override reasons and the activity log.",
)

# --- CORS ----------------------------------------------------------
# Admin front‑end dev servers.
origins = [
    "http://localhost:3000",    # Next.js dev server
    "http://127.0.0.1:3000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept", "X-User-Id"],
)

# --- Include Routers ----------------------------------------------------------
from .clients import router as clients_router
from .pipeline import router as pipeline_router

app.include_router(clients_router)
app.include_router(pipeline_router)


# ---------- health-check ----------
@app.get("/")
def root():
    return {"status": "ok", "msg": "Funnel API is alive"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("api.main:app", host=API_HOST, port=API_PORT, reload=API_DEBUG)
