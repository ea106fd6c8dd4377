"""Main FastAPI application."""
from fastapi import FastAPI, Response

import config
from errors import MintPipelineError, pipeline_error_handler
from routers import events, tickets
from middleware_metrics import MetricsMiddleware

# Monitoring imports
from sentry_config import init_sentry
from monitoring import get_metrics

# Initialize Sentry
init_sentry()

# Create FastAPI app
app = FastAPI(
    title="NFT Ticket Minting API",
    description="Ticket issuance and NFT minting pipeline for event ticketing",
    version=config.VERSION,
)

app.add_exception_handler(MintPipelineError, pipeline_error_handler)

# Add metrics middleware for Prometheus
app.add_middleware(MetricsMiddleware)

# Include routers with /api prefix
app.include_router(events.router, prefix="/api")
app.include_router(tickets.router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "NFT Ticket Minting API",
        "version": config.VERSION,
        "mint_mode": "immediate" if config.IMMEDIATE_MINT else "queued",
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(content=get_metrics(), media_type="text/plain")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
