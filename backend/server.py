"""
Local development server for the Safe Passage API.

This wraps the Lambda function to work as a local HTTP server.
Run with: py -m uvicorn server:app --reload --port 8000
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import json

from lambda_function import lambda_handler

app = FastAPI(title="Safe Passage")

# Allow CORS for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


async def _forward(request: Request, path: str) -> JSONResponse:
    """Replay the request as a Lambda event and translate the response."""
    try:
        body = await request.json()
    except ValueError:
        return JSONResponse(status_code=400, content={"error": "Request body must be JSON"})

    # Simulate Lambda event format
    event = {
        "httpMethod": "POST",
        "path": path,
        "body": json.dumps(body)
    }

    result = lambda_handler(event, None)

    return JSONResponse(
        status_code=result["statusCode"],
        content=json.loads(result["body"])
    )


@app.post("/assess-route")
async def assess_route(request: Request):
    """Weather and risk along a route."""
    return await _forward(request, "/assess-route")


@app.post("/shelter")
async def shelter(request: Request):
    """Coves ranked by shelter from the wind."""
    return await _forward(request, "/shelter")


@app.post("/wind-grid")
async def wind_grid(request: Request):
    """Wind over a grid for map overlays."""
    return await _forward(request, "/wind-grid")


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "ok"}
