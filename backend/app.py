"""
Regcheck FastAPI application.

Endpoints:
    GET  /                        Health check (+ per-vocabulary cache state)
    POST /check/gras              Ingredient list against the GRAS vocabulary
    POST /check/ndi-odi           Ingredient list against NDI notifications or old dietary ingredients
    POST /check/allergens         Major allergen detection (+ optional label declaration check)
    POST /admin/invalidate-cache  Force the next lookup to refresh one or all vocabularies
    GET  /admin/cache-stats       Snapshot counts, ages, TTLs and last refresh error
"""
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from typing import List, Optional
import logging
from dotenv import load_dotenv
from pathlib import Path

# Load env vars
load_dotenv(Path(__file__).parent / ".env")

# Initialize App
app = FastAPI(title="Regcheck Ingredient Compliance API")

from regcheck.config import log_config
log_config()

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Logger
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

from regcheck import ComplianceService, build_default_service
from regcheck.errors import InvalidReferenceData, ReferenceStoreUnavailable, UnknownVocabulary
from regcheck.evaluation import critical_unless_notified

service: ComplianceService = build_default_service()


# --- Startup ---
@app.on_event("startup")
async def _warmup_vocabularies():
    """Load every vocabulary once so the first request does not pay for the fetch."""
    loaded = service.cache.warm_up()
    failed = [vid for vid, ok in loaded.items() if not ok]
    if failed:
        logger.warning("WARMUP vocabularies not loaded (non-fatal, retried on first use): %s", failed)
    else:
        logger.info("WARMUP vocabularies loaded: %s", list(loaded))


@app.on_event("shutdown")
async def _close_cache():
    service.cache.close()


# --- Request Models ---
class IngredientListRequest(BaseModel):
    ingredients: List[str]


class NdiOdiRequest(BaseModel):
    ingredients: List[str]
    # names with a notification on file outside the NDI/ODI tables
    notified: Optional[List[str]] = None


class AllergenRequest(BaseModel):
    ingredients: List[str]
    declared: Optional[List[str]] = None


class InvalidateRequest(BaseModel):
    vocabulary: Optional[str] = None


# --- Helper Functions ---

def _raise_http(e: Exception, what: str):
    """Map engine errors onto HTTP status codes."""
    if isinstance(e, UnknownVocabulary):
        raise HTTPException(status_code=404, detail=str(e))
    if isinstance(e, (ReferenceStoreUnavailable, InvalidReferenceData)):
        logger.error("%s failed: reference data unavailable: %s", what, e)
        raise HTTPException(status_code=503, detail=str(e))
    logger.error("%s failed: %s", what, e)
    raise HTTPException(status_code=500, detail=str(e))


# --- Endpoints ---

@app.get("/")
def health_check():
    stats = service.cache_stats()
    return {
        "status": "ok",
        "service": "Regcheck Ingredient Compliance",
        "vocabularies": {vid: bool(s and s.get("count") is not None) for vid, s in stats.items()},
    }


@app.post("/check/gras")
def check_gras(request: IngredientListRequest):
    logger.info("CHECK gras ingredients=%d", len(request.ingredients))
    try:
        return service.check_gras(request.ingredients).to_dict()
    except Exception as e:
        _raise_http(e, "GRAS check")


@app.post("/check/ndi-odi")
def check_ndi_odi(request: NdiOdiRequest):
    logger.info("CHECK ndi+odi ingredients=%d notified=%d", len(request.ingredients), len(request.notified or []))
    try:
        if request.notified:
            report = service.check_ndi_and_odi(request.ingredients, critical_unless_notified(request.notified))
        else:
            report = service.check_ndi_and_odi(request.ingredients)
        return report.to_dict()
    except Exception as e:
        _raise_http(e, "NDI/ODI check")


@app.post("/check/allergens")
def check_allergens(request: AllergenRequest):
    logger.info("CHECK allergens ingredients=%d declared=%s", len(request.ingredients), request.declared)
    try:
        return service.check_allergens(request.ingredients, declared=request.declared).to_dict()
    except Exception as e:
        _raise_http(e, "Allergen check")


@app.post("/admin/invalidate-cache")
def invalidate_cache(request: Optional[InvalidateRequest] = None):
    vocabulary = request.vocabulary if request else None
    try:
        invalidated = service.invalidate(vocabulary)
    except Exception as e:
        _raise_http(e, "Cache invalidation")
    return {"invalidated": invalidated}


@app.get("/admin/cache-stats")
def cache_stats():
    return service.cache_stats()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app:app", host="0.0.0.0", port=8000, reload=True)
