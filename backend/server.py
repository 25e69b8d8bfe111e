import logging
import sys
import os
from typing import Any, Dict, List, Optional, Union

# Add current directory to path so we can import backend modules
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from config import load_config
from errors import InvalidStatus, NegativeSupply
from market import Market, compute_region_stats, create_demo_market

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title="SurgeSim Pricing", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------- Request/Response Models ----------

class StatusChange(BaseModel):
    status: Union[int, str]


class RegionOut(BaseModel):
    region_id: str
    base_rate: float
    adjustment: float
    effective_rate: float
    supply: int


class AgentOut(BaseModel):
    agent_id: str
    name: str
    region_id: str
    status: str


class StatusChangeResult(BaseModel):
    agent: AgentOut
    previous_status: str
    update: Optional[Dict[str, Any]] = None


class TrackerState(BaseModel):
    tracking: bool
    supply: Dict[str, int]


# ---------- Manager ----------

class MarketManager:
    """
    Owns the single in-memory market behind the API.

    Handlers are coroutines, so every mutation runs on the event loop
    thread one at a time.
    """

    def __init__(self):
        self.market: Optional[Market] = None

    def initialize(self) -> Market:
        config = load_config()
        self.market = create_demo_market(config=config)
        logger.info("Market initialized")
        return self.market

    def get(self) -> Market:
        if self.market is None:
            return self.initialize()
        return self.market

    def tracker_state(self) -> TrackerState:
        market = self.get()
        return TrackerState(tracking=market.is_tracking, supply=market.tracker.snapshot())


manager = MarketManager()


# ---------- API Endpoints ----------

@app.get("/regions", response_model=List[RegionOut])
async def list_regions():
    market = manager.get()
    return [
        RegionOut(supply=market.tracker.supply.get(region, 0), **region.to_dict())
        for region in market.regions.values()
    ]


@app.get("/agents", response_model=List[AgentOut])
async def list_agents():
    market = manager.get()
    return [AgentOut(**agent.to_dict()) for agent in market.agents.values()]


@app.get("/stats")
async def stats():
    market = manager.get()
    result = compute_region_stats(market.tracker.supply, market.tracker.tiers)
    result["tracking"] = market.is_tracking
    result["supply_mismatches"] = {rid: list(pair) for rid, pair in market.verify_supply().items()}
    return result


@app.post("/agents/{agent_id}/status", response_model=StatusChangeResult)
async def change_status(agent_id: str, req: StatusChange):
    market = manager.get()
    if agent_id not in market.agents:
        raise HTTPException(status_code=404, detail=f"Unknown agent: {agent_id}")

    agent = market.agent(agent_id)
    previous = agent.status
    try:
        update = market.set_status(agent_id, req.status)
    except InvalidStatus as e:
        raise HTTPException(status_code=422, detail=str(e))
    except NegativeSupply as e:
        logger.error(f"Supply invariant violated: {e}")
        raise HTTPException(status_code=409, detail=str(e))

    return StatusChangeResult(
        agent=AgentOut(**agent.to_dict()),
        previous_status=previous.label,
        update=update.to_dict() if update is not None else None,
    )


@app.post("/tracker/subscribe", response_model=TrackerState)
async def subscribe_tracker():
    manager.get().subscribe_tracker()
    return manager.tracker_state()


@app.post("/tracker/unsubscribe", response_model=TrackerState)
async def unsubscribe_tracker():
    manager.get().unsubscribe_tracker()
    return manager.tracker_state()


@app.post("/reset", response_model=TrackerState)
async def reset():
    manager.initialize()
    return manager.tracker_state()
