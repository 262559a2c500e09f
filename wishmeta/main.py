"""
Wishlist metadata service - FastAPI Application
Exposes link metadata lookup to the wishlist API and SMS handlers.
"""
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from wishmeta.config import config
from wishmeta.layers.metadata import MetadataOrchestrator
from wishmeta.models.metadata import UrlMetadata
from wishmeta.utils.logger import get_logger, set_trace_id


VERSION = "1.0.0"

# Initialize FastAPI app
app = FastAPI(
    title="Wishlist Metadata Service",
    description="Extracts title, image, price and site name from product links",
    version=VERSION,
    debug=config.DEBUG,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

orchestrator = MetadataOrchestrator()

logger = get_logger("main")


# Request models
class FetchMetaRequest(BaseModel):
    """Request model for metadata lookup."""
    url: Optional[str] = None


# API Routes
@app.get("/api/health")
async def health_check():
    """Health check endpoint. Also reports whether the Amazon PA-API is usable."""
    return {
        "status": "healthy",
        "version": VERSION,
        "amazonApi": {
            "configured": config.is_amazon_configured(),
            "missing": config.get_missing_amazon_vars(),
        },
    }


@app.post("/api/wishlist/fetch-meta", response_model=UrlMetadata)
async def fetch_meta(request: FetchMetaRequest):
    """
    Fetch metadata for a product link.

    Amazon links are looked up through the PA-API and returned with a
    clean affiliate URL; other links are scraped. Lookup failures still
    return 200 with empty fields.
    """
    set_trace_id()

    if not request.url or not request.url.strip():
        logger.info("fetch_meta_rejected", reason="missing_url")
        raise HTTPException(status_code=400, detail="URL is required")

    url = request.url.strip()
    logger.info("fetch_meta_request", url=url)

    metadata = await orchestrator.fetch_url_metadata(url)

    logger.info(
        "fetch_meta_completed",
        url=metadata.url,
        fields_present=metadata.get_present_fields(),
    )
    return metadata


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=config.HOST, port=config.PORT)
