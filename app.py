"""
Voyant — FastAPI Entry Point

Start with:  uvicorn app:app --reload
"""

import logging

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse

load_dotenv()

from api.routes import router  # noqa: E402  (modules read env at import)

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(name)s — %(message)s")

app = FastAPI(
    title="Voyant API",
    description="Travel destination briefings — risk data fused with live weather, news and summaries",
    version="0.1.0",
)


@app.get("/")
def root(request: Request):
    """Quick check that the server is up. Links use the same host/port you used to connect."""
    base = str(request.base_url).rstrip("/")
    return {
        "message": "Voyant API is running",
        "docs_simple": f"{base}/docs-simple",
        "health": f"{base}/api/v1/health",
        "example": f"{base}/api/v1/search?destination=Berlin,%20Germany",
    }


@app.get("/docs-simple", response_class=HTMLResponse)
def docs_simple():
    """Lightweight API docs — no external CDN, works when /docs is stuck."""
    return """
<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>Voyant API</title>
  <style>
    body { font-family: system-ui; max-width: 640px; margin: 2rem auto; padding: 0 1rem; }
    .endpoint { margin: 1.5rem 0; padding: 1rem; border: 1px solid #eee; border-radius: 8px; }
    .method { font-weight: bold; color: #0a0; }
    code { background: #f0f0f0; padding: 2px 6px; }
  </style>
</head>
<body>
  <h1>Voyant API</h1>
  <p>Use this page if <a href="/docs">/docs</a> is stuck loading (it uses external CDNs).</p>

  <div class="endpoint">
    <span class="method">GET</span> <code>/api/v1/search?destination=Berlin, Germany&amp;compare=Japan</code>
    <p>Resolve a destination and fuse risk data, weather, alerts, news, summary and narrative.</p>
  </div>

  <div class="endpoint">
    <span class="method">POST</span> <code>/api/v1/compare</code>
    <p>Body: <code>{"first_destination": "Germany", "second_destination": "Japan"}</code></p>
  </div>

  <div class="endpoint">
    <span class="method">GET</span> <code>/api/v1/city-search?q=vie&amp;limit=8</code>
    <p>Autocomplete suggestions from the city list.</p>
  </div>

  <div class="endpoint">
    <span class="method">GET</span> <code>/api/v1/weather?city=Vienna</code>
    <p>Forecast, air quality and weather alerts.</p>
  </div>

  <div class="endpoint">
    <span class="method">GET</span> <code>/api/v1/news?city=Paris&amp;hours=72</code>
    <p>Top five relevant headlines for a place.</p>
  </div>

  <div class="endpoint">
    <span class="method">GET</span> <code>/api/v1/countries</code>
    <p>Countries available in the risk dataset.</p>
  </div>

  <p>Raw OpenAPI schema: <a href="/openapi.json" target="_blank">/openapi.json</a></p>
</body>
</html>
"""


app.include_router(router, prefix="/api/v1")
