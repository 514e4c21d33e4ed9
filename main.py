from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

from database import Base, engine, get_settings
import models  # noqa: F401  (registers tables on Base.metadata)
from api import groups, tables, players, statistics

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: create tables if they do not exist yet
    Base.metadata.create_all(bind=engine)
    yield


app = FastAPI(
    title="Poker Ledger API",
    description="Buy-ins, cash-outs and table closing for home poker games, organized in groups",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(groups.router)
app.include_router(tables.router)
app.include_router(players.router)
app.include_router(statistics.router)


@app.get("/")
def root():
    return {"message": "Poker Ledger API", "status": "ok"}


@app.get("/health")
def health():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
