"""
FastAPI server for the differential drive trajectory optimizer.

Endpoints:
- POST /solve: Accept a reference path and initial state, return the optimized path
- GET /health: Health check
"""

import logging

from fastapi import FastAPI

from .config import get_log_level
from .routes import solve_router

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Differential Drive Trajectory Optimizer",
    description="Penalty-method trajectory fitting for differential drive robots",
    version="1.0.0"
)

app.include_router(solve_router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


def main():
    """Run the server."""
    import uvicorn
    logging.basicConfig(
        level=get_log_level(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    logger.info("Starting trajectory optimizer server on port 8000")
    uvicorn.run(app, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
