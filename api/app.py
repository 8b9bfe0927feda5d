"""
api/app.py - FastAPI server for ranking with a trained ltrnet model
"""

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from typing import List, Optional
import logging
import sys
import os

# Add parent directory to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from ltrnet.exceptions import DimensionMismatchError, PersistenceError
from ltrnet.model import Document, Query
from ltrnet.evaluator import sort_p
from ltrnet.ranker import load_ranker

logger = logging.getLogger(__name__)

MODEL_FILE_ENV = "LTRNET_MODEL_FILE"
DEFAULT_MODEL_FILE = "model/model.json"

# Initialize FastAPI
app = FastAPI(
    title="ltrnet Ranking API",
    description="Learning to Rank inference with a trained feed-forward ranker",
    version="0.1.0"
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Global ranker
ranker = None


# Request/Response Models
class DocumentInput(BaseModel):
    features: List[float]
    doc_id: Optional[str] = None


class RankRequest(BaseModel):
    documents: List[DocumentInput]
    top_k: Optional[int] = None


class RankedDocument(BaseModel):
    rank: int
    doc_id: Optional[str]
    position: int
    score: float


class PairRequest(BaseModel):
    features1: List[float]
    features2: List[float]


# API Endpoints
@app.on_event("startup")
async def startup():
    """Load the model on startup"""
    global ranker

    model_file = os.environ.get(MODEL_FILE_ENV, DEFAULT_MODEL_FILE)
    try:
        ranker = load_ranker(model_file)
        logger.info(f"Loaded model from {model_file}")
    except PersistenceError:
        ranker = None
        logger.error(f"No usable model at {model_file}", exc_info=True)


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "ltrnet Ranking API",
        "endpoints": [
            "/rank",
            "/predict",
            "/model",
            "/health"
        ]
    }


@app.post("/rank", response_model=List[RankedDocument])
async def rank(request: RankRequest):
    """Sort the posted documents by predicted relevance"""
    if not ranker:
        raise HTTPException(status_code=503, detail="Model not loaded")

    query = Query(
        query_id="request",
        docs=[Document(features=d.features, label=0.0, position=i) for i, d in enumerate(request.documents)]
    )

    try:
        scores = {id(doc): ranker.predict(doc.features) for doc in query.docs}
        ranked = sort_p(ranker, query)
    except DimensionMismatchError as e:
        raise HTTPException(status_code=422, detail=str(e))

    if request.top_k is not None:
        ranked = ranked[:request.top_k]

    return [
        RankedDocument(
            rank=i + 1,
            doc_id=request.documents[doc.position].doc_id,
            position=doc.position,
            score=scores[id(doc)]
        )
        for i, doc in enumerate(ranked)
    ]


@app.post("/predict")
async def predict(request: PairRequest):
    """Preference score of features1 over features2 (pairwise models only)"""
    if not ranker:
        raise HTTPException(status_code=503, detail="Model not loaded")
    if not hasattr(ranker, "predict_pair"):
        raise HTTPException(status_code=400, detail=f"Model '{ranker.name}' is not pairwise")

    try:
        score = ranker.predict_pair(request.features1, request.features2)
    except DimensionMismatchError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return {"preference": score, "first_preferred": score > 0}


@app.get("/model")
async def model_info():
    """Topology of the loaded model"""
    if not ranker:
        raise HTTPException(status_code=503, detail="Model not loaded")

    network = ranker.network
    return {
        "ranker": ranker.name,
        "feature_dim": ranker.feature_dim,
        "layers": [
            {"size": network.layer_sizes[l], "activation": network.activations[l].name}
            for l in range(1, network.num_layers)
        ],
        "dead_edges": int(sum(network.dead[l].sum() for l in range(1, network.num_layers)))
    }


@app.get("/health")
async def health():
    """Health check"""
    return {"status": "healthy", "model_loaded": ranker is not None}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
