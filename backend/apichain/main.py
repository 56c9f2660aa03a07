import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from apichain.api import chains
from apichain.config import get_settings

logging.basicConfig(
    level=getattr(logging, get_settings().log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="API Chain",
    description="Request-chain execution for API testing",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(chains.router, prefix="/api/chains", tags=["chains"])


@app.get("/health")
async def health():
    return {"status": "healthy"}
